"""
Security challenge aggregate - Code lifecycle state machine.

A SecurityChallenge is one batch of codes issued for one user and one
purpose. It exclusively owns its SecurityCode children.

Code State Machine (Forward-Only Transitions)
=============================================

States:
- UNUSED: Initial state of every generated code
- USED: Terminal state, reached by redemption or by challenge invalidation

Valid Transitions:
    UNUSED -> USED   (code redeemed: used_at = redemption time)
    UNUSED -> USED   (challenge invalidated: used_at = invalidated_at)

A code that was already redeemed keeps its original used_at when its
challenge is invalidated later.

The _apply_* methods mutate state from an event and are only called by
SecurityManager in this module. Callers go through the manager, which
checks rules, builds the event, applies it and records it.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from .aggregate import AggregateRoot
from .code_generator import SecureCodeGenerator
from .events import ChallengeInvalidated, CodeGenerated, CodeRedeemed
from .exceptions import CodeAlreadyUsed, NoActiveChallenge, PurposeMismatch
from .ports import ActiveChallengeCounter, CodeGenerator
from .rules import DEFAULT_CHALLENGE_LIMIT, ChallengeQuotaRule, check_rule
from .values import Code, CodeStatus, Purpose, SecurityLevel, add_months, utc_now

DEFAULT_CODES_PER_CHALLENGE = 5
DEFAULT_TTL_MONTHS = 1


class SecurityCode(AggregateRoot):
    """Single-use code owned by a SecurityChallenge."""

    def __init__(
        self,
        id: UUID,
        code: Code,
        status: CodeStatus = CodeStatus.UNUSED,
        used_at: datetime | None = None,
    ) -> None:
        super().__init__()
        if (status == CodeStatus.USED) != (used_at is not None):
            raise ValueError("used_at must be set exactly when status is USED")
        self.id = id
        self.code = code
        self.status = status
        self.used_at = used_at
        self.challenge: SecurityChallenge | None = None

    @property
    def is_used(self) -> bool:
        return self.status == CodeStatus.USED

    def _apply_redeemed(self, event: CodeRedeemed) -> None:
        self.status = event.status
        self.used_at = event.used_at

    def __repr__(self) -> str:
        return f"SecurityCode(id={self.id}, status={self.status.value}, used_at={self.used_at})"


class SecurityChallenge(AggregateRoot):
    """Aggregate root for one batch of codes (user, purpose)."""

    def __init__(
        self,
        id: UUID,
        user_id: UUID,
        purpose: Purpose,
        created_at: datetime,
        expires_at: datetime,
        invalidated_at: datetime | None = None,
        codes: Sequence[SecurityCode] = (),
    ) -> None:
        super().__init__()
        self.id = id
        self.user_id = user_id
        self.purpose = purpose
        self.created_at = created_at
        self.expires_at = expires_at
        self.invalidated_at = invalidated_at
        self._codes: list[SecurityCode] = []
        for code in codes:
            self._add_code(code)

    @property
    def codes(self) -> tuple[SecurityCode, ...]:
        return tuple(self._codes)

    @property
    def is_invalidated(self) -> bool:
        return self.invalidated_at is not None

    def _add_code(self, code: SecurityCode) -> None:
        if code.challenge is not None and code.challenge is not self:
            raise ValueError("A security code cannot move between challenges")
        if code not in self._codes:
            self._codes.append(code)
            code.challenge = self

    @classmethod
    def _from_generated(cls, event: CodeGenerated) -> "SecurityChallenge":
        challenge = cls(
            id=event.aggregate_id,
            user_id=event.user_id,
            purpose=event.purpose,
            created_at=event.created_at,
            expires_at=event.expires_at,
        )
        for value in event.codes:
            challenge._add_code(SecurityCode(uuid4(), Code.from_string(value), event.status))
        return challenge

    def _apply_invalidated(self, event: ChallengeInvalidated) -> None:
        self.invalidated_at = event.invalidated_at
        for code in self._codes:
            if not code.is_used:
                code.status = CodeStatus.USED
                code.used_at = event.invalidated_at

    def __repr__(self) -> str:
        return (
            f"SecurityChallenge(id={self.id}, user_id={self.user_id}, "
            f"purpose={self.purpose.value}, invalidated_at={self.invalidated_at})"
        )


@dataclass
class SecurityManager:
    """
    Orchestrates security challenge transitions.

    Every operation either fully succeeds (state changed, event recorded)
    or raises before touching the aggregate.
    """

    generator: CodeGenerator = field(default_factory=SecureCodeGenerator)
    clock: Callable[[], datetime] = utc_now
    challenge_limit: int = DEFAULT_CHALLENGE_LIMIT
    ttl_months: int = DEFAULT_TTL_MONTHS

    def generate(
        self,
        user_id: UUID,
        purpose: Purpose,
        length: int,
        level: SecurityLevel,
        counter: ActiveChallengeCounter,
        quantity: int = DEFAULT_CODES_PER_CHALLENGE,
        allow_duplicates: bool = True,
    ) -> SecurityChallenge:
        """
        Issue a new challenge holding `quantity` fresh codes.

        Raises:
            BusinessRuleViolation: If the user already holds `challenge_limit`
                non-invalidated challenges
            ConfigurationError: If length/level cannot produce codes
        """
        check_rule(ChallengeQuotaRule(counter, user_id, self.challenge_limit))

        codes = self.generator.generate(quantity, length, level, allow_duplicates)
        now = self.clock()
        event = CodeGenerated(
            aggregate_id=uuid4(),
            user_id=user_id,
            purpose=purpose,
            codes=tuple(codes),
            created_at=now,
            expires_at=add_months(now, self.ttl_months),
            occurred_at=now,
        )
        challenge = SecurityChallenge._from_generated(event)
        challenge.record_event(event)
        return challenge

    def redeem(self, code: SecurityCode, purpose: Purpose) -> None:
        """
        Mark a single code as used.

        Raises:
            PurposeMismatch: If the challenge was issued for another purpose
            CodeAlreadyUsed: If the code is already used (carries used_at)
        """
        challenge = code.challenge
        if challenge is None:
            raise ValueError("Security code is not attached to a challenge")
        if challenge.purpose != purpose:
            raise PurposeMismatch(challenge.purpose.value, purpose.value)
        if code.is_used:
            raise CodeAlreadyUsed(code.used_at)

        now = self.clock()
        event = CodeRedeemed(
            aggregate_id=code.id,
            challenge_id=challenge.id,
            used_at=now,
            occurred_at=now,
        )
        code._apply_redeemed(event)
        code.record_event(event)

    def invalidate_all(self, challenge: SecurityChallenge) -> None:
        """
        Invalidate the challenge and force its unused codes to USED.

        Raises:
            NoActiveChallenge: If the challenge is already invalidated
        """
        if challenge.is_invalidated:
            raise NoActiveChallenge()

        now = self.clock()
        event = ChallengeInvalidated(
            aggregate_id=challenge.id,
            user_id=challenge.user_id,
            purpose=challenge.purpose,
            invalidated_at=now,
            occurred_at=now,
        )
        challenge._apply_invalidated(event)
        challenge.record_event(event)
