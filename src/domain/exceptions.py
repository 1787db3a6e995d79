"""
Domain exceptions - Semantic error types for security codes and users.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Kinds:
- FormatError: malformed value object input (rejected at construction)
- BusinessRuleViolation: a specification was not satisfied
- NotFoundError: a required resource does not exist
- StateConflictError: the aggregate is in a state that forbids the transition
- InvalidCredentials: authentication failed
"""

from datetime import datetime


class DomainError(Exception):
    """Base class for all domain errors."""

    pass


class FormatError(DomainError, ValueError):
    """Raw input violates a value object constraint."""

    def __init__(self, constraint: str) -> None:
        super().__init__(constraint)
        self.constraint = constraint


class ConfigurationError(DomainError, ValueError):
    """Code generator parameters cannot produce a valid code."""

    pass


class BusinessRuleViolation(DomainError):
    """A business rule specification is not satisfied."""

    def __init__(self, message: str, code: int) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class NotFoundError(DomainError):
    """Base class for missing resources."""

    pass


class UserNotFound(NotFoundError):
    """No user with the given id."""

    pass


class ChallengeNotFound(NotFoundError):
    """No security challenge with the given id."""

    pass


class CodeNotFound(NotFoundError):
    """The specified code does not exist for this user."""

    def __init__(self) -> None:
        super().__init__("The specified code does not exist")


class NoActiveChallenge(NotFoundError):
    """No non-invalidated challenge for the (user, purpose) pair."""

    def __init__(self) -> None:
        super().__init__("No active security codes to invalidate")


class StateConflictError(DomainError):
    """Base class for transitions forbidden by the current state."""

    pass


class PurposeMismatch(StateConflictError):
    """The code was issued for a different purpose."""

    def __init__(self, expected: str, given: str) -> None:
        super().__init__(
            f'The specified purpose "{given}" does not match the expected purpose "{expected}".'
        )
        self.expected = expected
        self.given = given


class CodeAlreadyUsed(StateConflictError):
    """The code has already been redeemed or invalidated."""

    def __init__(self, used_at: datetime) -> None:
        super().__init__(
            f"The specified code has already been used on: {used_at:%Y-%m-%d %H:%M:%S}"
        )
        self.used_at = used_at


class UserAlreadySuspended(StateConflictError):
    """Suspend was requested for a suspended user."""

    def __init__(self) -> None:
        super().__init__("User is already suspended")


class UserAlreadySoftDeleted(StateConflictError):
    """Soft delete was requested for a deleted user."""

    def __init__(self) -> None:
        super().__init__("User is already deleted")


class UserCannotBeRestored(StateConflictError):
    """Restore was requested for an active user."""

    def __init__(self) -> None:
        super().__init__("User is neither suspended nor deleted")


class EmailUnchanged(StateConflictError):
    """New email equals the current one."""

    def __init__(self) -> None:
        super().__init__("New email should be different")


class UnknownOperation(StateConflictError):
    """Status operation string is not recognised."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Unknown user operation: {operation!r}")
        self.operation = operation


class InvalidCredentials(DomainError):
    """Email/password pair does not authenticate."""

    def __init__(self) -> None:
        super().__init__("Invalid credentials entered.")
