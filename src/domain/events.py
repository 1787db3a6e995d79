"""
Domain events - Immutable facts describing what happened.

Each event carries every value its aggregate needs to apply the change,
so applying an event never consults a clock or a repository.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from .values import CodeStatus, Email, HashedPassword, Purpose, Username, utc_now


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base event: unique id and the aggregate it happened to."""

    aggregate_id: UUID
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utc_now)


# Security challenge events


@dataclass(frozen=True, kw_only=True)
class CodeGenerated(DomainEvent):
    user_id: UUID
    purpose: Purpose
    codes: tuple[str, ...]
    created_at: datetime
    expires_at: datetime
    status: CodeStatus = CodeStatus.UNUSED


@dataclass(frozen=True, kw_only=True)
class CodeRedeemed(DomainEvent):
    """aggregate_id is the redeemed SecurityCode's id."""

    challenge_id: UUID
    used_at: datetime
    status: CodeStatus = CodeStatus.USED


@dataclass(frozen=True, kw_only=True)
class ChallengeInvalidated(DomainEvent):
    user_id: UUID
    purpose: Purpose
    invalidated_at: datetime


# User events


@dataclass(frozen=True, kw_only=True)
class UserCreated(DomainEvent):
    username: Username
    email: Email
    password: HashedPassword
    created_at: datetime


@dataclass(frozen=True, kw_only=True)
class UserSignedIn(DomainEvent):
    email: Email
    logged_at: datetime


@dataclass(frozen=True, kw_only=True)
class UserLoggedOut(DomainEvent):
    pass


@dataclass(frozen=True, kw_only=True)
class UserEmailChanged(DomainEvent):
    previous_email: Email
    email: Email
    updated_at: datetime


@dataclass(frozen=True, kw_only=True)
class UserPasswordChanged(DomainEvent):
    password: HashedPassword
    updated_at: datetime


@dataclass(frozen=True, kw_only=True)
class UserSuspended(DomainEvent):
    suspended_at: datetime


@dataclass(frozen=True, kw_only=True)
class UserSoftDeleted(DomainEvent):
    deleted_at: datetime


@dataclass(frozen=True, kw_only=True)
class UserRestored(DomainEvent):
    restored_at: datetime
