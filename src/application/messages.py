"""
Commands and queries - One immutable message per use case.

Messages carry raw primitives. Handlers turn them into value objects,
so malformed input fails with FormatError before any rule is checked.
"""

from dataclasses import dataclass, field
from uuid import UUID


@dataclass(frozen=True)
class GenerateCodesCommand:
    user_id: UUID
    purpose: str
    code_length: int
    security_level: str = "medium"


@dataclass(frozen=True)
class RedeemCodeCommand:
    user_id: UUID
    code: str
    purpose: str


@dataclass(frozen=True)
class InvalidateCodesCommand:
    user_id: UUID
    purpose: str


@dataclass(frozen=True)
class SignUpCommand:
    user_id: UUID
    username: str
    email: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class SignInCommand:
    email: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class LogoutCommand:
    user_id: UUID


@dataclass(frozen=True)
class ChangeEmailCommand:
    user_id: UUID
    email: str


@dataclass(frozen=True)
class ChangePasswordCommand:
    user_id: UUID
    password: str = field(repr=False)


@dataclass(frozen=True)
class ResetPasswordCommand:
    """Redeem a password_reset code and set a new password in one transaction."""

    user_id: UUID
    code: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ChangeStatusCommand:
    user_id: UUID
    operation: str


@dataclass(frozen=True)
class FindUserByIdQuery:
    user_id: UUID


@dataclass(frozen=True)
class FindActiveChallengeQuery:
    user_id: UUID
    purpose: str
