"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

if TYPE_CHECKING:
    from .events import DomainEvent
    from .security import SecurityChallenge, SecurityCode
    from .user import User
    from .values import Email, Purpose, SecurityLevel


class ActiveChallengeCounter(Protocol):
    """Capability required by the challenge quota rule."""

    def count_active_challenges(self, user_id: UUID) -> int:
        """
        Count challenges of the user that have not been invalidated.

        Args:
            user_id: Owner of the challenges

        Returns:
            Number of challenges with invalidated_at still NULL
        """
        ...


class EmailAvailability(Protocol):
    """Capability required by the email uniqueness rule."""

    def email_exists(self, email: "Email") -> bool:
        """Return True if any user currently holds the email."""
        ...


class SecurityRepository(ActiveChallengeCounter, Protocol):
    """Port interface for security challenge persistence."""

    def get(self, challenge_id: UUID) -> "SecurityChallenge":
        """
        Load a challenge with all of its codes.

        Raises:
            ChallengeNotFound: If no challenge has this id
        """
        ...

    def store(self, challenge: "SecurityChallenge") -> None:
        """Persist a new or modified challenge together with its codes."""
        ...

    def find_non_invalidated_challenge(
        self, user_id: UUID, purpose: "Purpose"
    ) -> "SecurityChallenge | None":
        """Return the newest non-invalidated challenge for (user, purpose), if any."""
        ...

    def find_code_by_value(self, user_id: UUID, code: str) -> "SecurityCode | None":
        """
        Find a code string among the user's challenges.

        Unused codes win over used ones, then the newest challenge wins.
        The returned code's `challenge` back-reference is loaded.
        """
        ...


class UserRepository(EmailAvailability, Protocol):
    """Port interface for user persistence."""

    def get(self, user_id: UUID) -> "User":
        """
        Load a user.

        Raises:
            UserNotFound: If no user has this id
        """
        ...

    def store(self, user: "User") -> None:
        """Persist a new or modified user."""
        ...

    def find_uuid_by_email(self, email: "Email") -> UUID | None:
        """Return the id of the user holding the email, if any."""
        ...


class CodeGenerator(Protocol):
    """Port interface for random code synthesis."""

    def generate(
        self,
        quantity: int,
        length: int,
        level: "SecurityLevel",
        allow_duplicates: bool = True,
    ) -> list[str]:
        """
        Generate `quantity` random codes of `length` characters.

        Raises:
            ConfigurationError: If the parameters cannot produce a code
        """
        ...


class EventBus(Protocol):
    """Port interface for domain event publication."""

    def publish(self, event: "DomainEvent") -> None:
        """Deliver the event to every subscriber, raising on failure."""
        ...
