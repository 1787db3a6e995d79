"""
In-memory repository adapter - Implements the repository protocols.

Committed state lives in an InMemoryDatabase shared by every unit of work
of the process. Each unit of work loads private copies of aggregates and
stages its writes; commit() publishes the staged copies under a lock.
Used by the unit tests and for running the API without PostgreSQL.
"""

import copy
import threading
from uuid import UUID

from src.application.unit_of_work import AbstractUnitOfWork
from src.domain.aggregate import AggregateRoot
from src.domain.exceptions import ChallengeNotFound, UserNotFound
from src.domain.ports import EventBus
from src.domain.security import SecurityChallenge, SecurityCode
from src.domain.user import User
from src.domain.values import Email, Purpose


def _detached(aggregate: AggregateRoot) -> AggregateRoot:
    clone = copy.deepcopy(aggregate)
    clone.pull_events()
    if isinstance(clone, SecurityChallenge):
        for code in clone.codes:
            code.pull_events()
    return clone


class InMemoryDatabase:
    """Committed state shared between units of work."""

    def __init__(self) -> None:
        self.users: dict[UUID, User] = {}
        self.challenges: dict[UUID, SecurityChallenge] = {}
        self.lock = threading.RLock()


class InMemoryUserRepository:
    """
    Implements UserRepository protocol over an InMemoryDatabase.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, uow: "InMemoryUnitOfWork", database: InMemoryDatabase) -> None:
        self._uow = uow
        self._db = database
        self._loaded: dict[UUID, User] = {}
        self.staged: dict[UUID, User] = {}

    def get(self, user_id: UUID) -> User:
        if user_id in self._loaded:
            return self._loaded[user_id]
        with self._db.lock:
            committed = self._db.users.get(user_id)
            if committed is None:
                raise UserNotFound(f"User {user_id} not found")
            user = _detached(committed)
        self._loaded[user_id] = user
        self._uow.track(user)
        return user

    def store(self, user: User) -> None:
        self._uow.register(user)
        self._loaded[user.id] = user
        self.staged[user.id] = user

    def find_uuid_by_email(self, email: Email) -> UUID | None:
        for user in self._visible():
            if user.email == email:
                return user.id
        return None

    def email_exists(self, email: Email) -> bool:
        return self.find_uuid_by_email(email) is not None

    def _visible(self) -> list[User]:
        with self._db.lock:
            merged = dict(self._db.users)
        merged.update(self._loaded)
        return list(merged.values())


class InMemorySecurityRepository:
    """
    Implements SecurityRepository protocol over an InMemoryDatabase.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, uow: "InMemoryUnitOfWork", database: InMemoryDatabase) -> None:
        self._uow = uow
        self._db = database
        self._loaded: dict[UUID, SecurityChallenge] = {}
        self.staged: dict[UUID, SecurityChallenge] = {}

    def get(self, challenge_id: UUID) -> SecurityChallenge:
        if challenge_id in self._loaded:
            return self._loaded[challenge_id]
        with self._db.lock:
            committed = self._db.challenges.get(challenge_id)
            if committed is None:
                raise ChallengeNotFound(f"Security challenge {challenge_id} not found")
            challenge = _detached(committed)
        self._loaded[challenge_id] = challenge
        self._uow.track(challenge)
        for code in challenge.codes:
            self._uow.track(code)
        return challenge

    def store(self, challenge: SecurityChallenge) -> None:
        self._uow.register(challenge)
        for code in challenge.codes:
            self._uow.register(code)
        self._loaded[challenge.id] = challenge
        self.staged[challenge.id] = challenge

    def count_active_challenges(self, user_id: UUID) -> int:
        return sum(
            1
            for challenge in self._visible()
            if challenge.user_id == user_id and not challenge.is_invalidated
        )

    def find_non_invalidated_challenge(
        self, user_id: UUID, purpose: Purpose
    ) -> SecurityChallenge | None:
        candidates = [
            challenge
            for challenge in self._visible()
            if challenge.user_id == user_id
            and challenge.purpose == purpose
            and not challenge.is_invalidated
        ]
        if not candidates:
            return None
        newest = max(candidates, key=lambda challenge: challenge.created_at)
        return self.get(newest.id)

    def find_code_by_value(self, user_id: UUID, code: str) -> SecurityCode | None:
        matches = [
            (security_code.is_used, -challenge.created_at.timestamp(), challenge.id, security_code.id)
            for challenge in self._visible()
            if challenge.user_id == user_id
            for security_code in challenge.codes
            if security_code.code.value == code
        ]
        if not matches:
            return None
        _, _, challenge_id, code_id = min(matches, key=lambda match: match[:2])
        challenge = self.get(challenge_id)
        return next(security_code for security_code in challenge.codes if security_code.id == code_id)

    def _visible(self) -> list[SecurityChallenge]:
        with self._db.lock:
            merged = dict(self._db.challenges)
        merged.update(self._loaded)
        return list(merged.values())


class InMemoryUnitOfWork(AbstractUnitOfWork):
    """Unit of work over an InMemoryDatabase."""

    def __init__(self, database: InMemoryDatabase, event_bus: EventBus) -> None:
        super().__init__(event_bus)
        self._db = database
        self._reset()

    def _reset(self) -> None:
        self.users = InMemoryUserRepository(self, self._db)
        self.challenges = InMemorySecurityRepository(self, self._db)

    def _commit(self) -> None:
        with self._db.lock:
            for user_id, user in self.users.staged.items():
                self._db.users[user_id] = _detached(user)
            for challenge_id, challenge in self.challenges.staged.items():
                self._db.challenges[challenge_id] = _detached(challenge)
        self.users.staged.clear()
        self.challenges.staged.clear()

    def _rollback(self) -> None:
        self._reset()
