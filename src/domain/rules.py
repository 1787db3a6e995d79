"""
Business rule specifications - Predicates gating state transitions.

A rule answers "is this transition allowed" and, when it is not, explains
why with a ValidationMessage. Managers call check_rule() before building
any event, so a violated rule leaves the aggregate untouched.

Rules depend only on narrow capability ports (see ports.py), never on
whole repositories.
"""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from .exceptions import BusinessRuleViolation
from .ports import ActiveChallengeCounter, EmailAvailability
from .values import Email

QUOTA_RULE_CODE = 4001
EMAIL_UNIQUE_RULE_CODE = 4002
DEFAULT_CHALLENGE_LIMIT = 5


@dataclass(frozen=True)
class ValidationMessage:
    """Human-readable message plus stable numeric code."""

    message: str
    code: int


class BusinessRule(Protocol):
    """Port interface for business rule specifications."""

    def is_satisfied_by(self) -> bool: ...

    def violation_message(self) -> ValidationMessage: ...


def check_rule(rule: BusinessRule) -> None:
    """
    Raise BusinessRuleViolation if the rule is not satisfied.

    Raises:
        BusinessRuleViolation: carrying the rule's message and code
    """
    if rule.is_satisfied_by():
        return
    violation = rule.violation_message()
    raise BusinessRuleViolation(violation.message, violation.code)


@dataclass(frozen=True)
class ChallengeQuotaRule:
    """Satisfied while the user holds fewer than `limit` non-invalidated challenges."""

    counter: ActiveChallengeCounter
    user_id: UUID
    limit: int = DEFAULT_CHALLENGE_LIMIT

    def is_satisfied_by(self) -> bool:
        return self.counter.count_active_challenges(self.user_id) < self.limit

    def violation_message(self) -> ValidationMessage:
        return ValidationMessage(
            "Invalidate existing codes before generating new ones", QUOTA_RULE_CODE
        )


@dataclass(frozen=True)
class EmailMustBeUniqueRule:
    """Satisfied when no user currently holds the candidate email."""

    checker: EmailAvailability
    email: Email

    def is_satisfied_by(self) -> bool:
        return not self.checker.email_exists(self.email)

    def violation_message(self) -> ValidationMessage:
        return ValidationMessage("Email already registered", EMAIL_UNIQUE_RULE_CODE)
