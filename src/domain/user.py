"""
User aggregate - Account lifecycle.

User State Machine
==================

States (derived from nullable timestamps):
- ACTIVE: suspended_at and deleted_at both NULL
- SUSPENDED: suspended_at set
- DELETED: deleted_at set (soft delete, row is kept)

Valid Transitions:
    ACTIVE    -> SUSPENDED  (suspend)
    ACTIVE    -> DELETED    (soft_delete)
    SUSPENDED -> DELETED    (soft_delete)
    SUSPENDED -> ACTIVE     (restore, clears both timestamps)
    DELETED   -> ACTIVE     (restore, clears both timestamps)
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from .aggregate import AggregateRoot
from .events import (
    UserCreated,
    UserEmailChanged,
    UserLoggedOut,
    UserPasswordChanged,
    UserRestored,
    UserSignedIn,
    UserSoftDeleted,
    UserSuspended,
)
from .exceptions import (
    EmailUnchanged,
    InvalidCredentials,
    UnknownOperation,
    UserAlreadySoftDeleted,
    UserAlreadySuspended,
    UserCannotBeRestored,
)
from .ports import EmailAvailability
from .rules import EmailMustBeUniqueRule, check_rule
from .values import Credentials, Email, HashedPassword, Username, utc_now


class UserStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class UserOperation(str, Enum):
    """Status operations accepted by UserStatusManager."""

    SUSPEND = "suspend"
    SOFT_DELETE = "soft_delete"
    RESTORE = "restore"

    @classmethod
    def from_string(cls, value: str) -> "UserOperation":
        try:
            return cls(value)
        except ValueError:
            raise UnknownOperation(value) from None


class User(AggregateRoot):
    """Aggregate root for an account."""

    def __init__(
        self,
        id: UUID,
        username: Username,
        email: Email,
        password: HashedPassword,
        created_at: datetime,
        updated_at: datetime,
        logged_at: datetime | None = None,
        suspended_at: datetime | None = None,
        deleted_at: datetime | None = None,
    ) -> None:
        super().__init__()
        self.id = id
        self.username = username
        self.email = email
        self.password = password
        self.created_at = created_at
        self.updated_at = updated_at
        self.logged_at = logged_at
        self.suspended_at = suspended_at
        self.deleted_at = deleted_at

    @property
    def is_suspended(self) -> bool:
        return self.suspended_at is not None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def status(self) -> UserStatus:
        if self.is_deleted:
            return UserStatus.DELETED
        if self.is_suspended:
            return UserStatus.SUSPENDED
        return UserStatus.ACTIVE

    @classmethod
    def _from_created(cls, event: UserCreated) -> "User":
        return cls(
            id=event.aggregate_id,
            username=event.username,
            email=event.email,
            password=event.password,
            created_at=event.created_at,
            updated_at=event.created_at,
        )

    def _apply_signed_in(self, event: UserSignedIn) -> None:
        self.logged_at = event.logged_at
        self.updated_at = event.logged_at

    def _apply_email_changed(self, event: UserEmailChanged) -> None:
        self.email = event.email
        self.updated_at = event.updated_at

    def _apply_password_changed(self, event: UserPasswordChanged) -> None:
        self.password = event.password
        self.updated_at = event.updated_at

    def _apply_suspended(self, event: UserSuspended) -> None:
        self.suspended_at = event.suspended_at

    def _apply_soft_deleted(self, event: UserSoftDeleted) -> None:
        self.deleted_at = event.deleted_at

    def _apply_restored(self, event: UserRestored) -> None:
        self.suspended_at = None
        self.deleted_at = None

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email.value}, status={self.status.value})"


@dataclass
class UserManager:
    """Orchestrates sign-up, authentication and settings changes."""

    clock: Callable[[], datetime] = utc_now

    def create(
        self,
        user_id: UUID,
        username: Username,
        credentials: Credentials,
        checker: EmailAvailability,
    ) -> User:
        """
        Create a user after checking email uniqueness.

        Raises:
            BusinessRuleViolation: If the email is already registered
        """
        check_rule(EmailMustBeUniqueRule(checker, credentials.email))

        now = self.clock()
        event = UserCreated(
            aggregate_id=user_id,
            username=username,
            email=credentials.email,
            password=credentials.password,
            created_at=now,
            occurred_at=now,
        )
        user = User._from_created(event)
        user.record_event(event)
        return user

    def sign_in(self, user: User, plain_password: str) -> None:
        """
        Verify the password and stamp the login time.

        Raises:
            InvalidCredentials: If the password does not match
        """
        if not user.password.match(plain_password):
            raise InvalidCredentials()

        now = self.clock()
        event = UserSignedIn(aggregate_id=user.id, email=user.email, logged_at=now, occurred_at=now)
        user._apply_signed_in(event)
        user.record_event(event)

    def log_out(self, user: User) -> None:
        user.record_event(UserLoggedOut(aggregate_id=user.id, occurred_at=self.clock()))

    def change_email(self, user: User, email: Email, checker: EmailAvailability) -> None:
        """
        Replace the user's email.

        Raises:
            EmailUnchanged: If the new email equals the current one
            BusinessRuleViolation: If another user holds the new email
        """
        if email == user.email:
            raise EmailUnchanged()
        check_rule(EmailMustBeUniqueRule(checker, email))

        now = self.clock()
        event = UserEmailChanged(
            aggregate_id=user.id,
            previous_email=user.email,
            email=email,
            updated_at=now,
            occurred_at=now,
        )
        user._apply_email_changed(event)
        user.record_event(event)

    def change_password(self, user: User, password: HashedPassword) -> None:
        now = self.clock()
        event = UserPasswordChanged(
            aggregate_id=user.id, password=password, updated_at=now, occurred_at=now
        )
        user._apply_password_changed(event)
        user.record_event(event)


@dataclass
class UserStatusManager:
    """Suspends, soft-deletes and restores users."""

    clock: Callable[[], datetime] = utc_now

    def change_status(self, user: User, operation: UserOperation | str) -> None:
        """
        Dispatch a status operation.

        Raises:
            UnknownOperation: If the operation string is not recognised
            UserAlreadySuspended | UserAlreadySoftDeleted | UserCannotBeRestored
        """
        if not isinstance(operation, UserOperation):
            operation = UserOperation.from_string(operation)
        handlers = {
            UserOperation.SUSPEND: self.suspend,
            UserOperation.SOFT_DELETE: self.soft_delete,
            UserOperation.RESTORE: self.restore,
        }
        handlers[operation](user)

    def suspend(self, user: User) -> None:
        if user.is_suspended:
            raise UserAlreadySuspended()
        now = self.clock()
        event = UserSuspended(aggregate_id=user.id, suspended_at=now, occurred_at=now)
        user._apply_suspended(event)
        user.record_event(event)

    def soft_delete(self, user: User) -> None:
        if user.is_deleted:
            raise UserAlreadySoftDeleted()
        now = self.clock()
        event = UserSoftDeleted(aggregate_id=user.id, deleted_at=now, occurred_at=now)
        user._apply_soft_deleted(event)
        user.record_event(event)

    def restore(self, user: User) -> None:
        if not user.is_suspended and not user.is_deleted:
            raise UserCannotBeRestored()
        now = self.clock()
        event = UserRestored(aggregate_id=user.id, restored_at=now, occurred_at=now)
        user._apply_restored(event)
        user.record_event(event)
