"""
Unit tests for the unit of work and its deferred dispatch.

Uses the in-memory unit of work. Tests verify:
- No event is published before the transaction commits
- Rolled back work publishes nothing and persists nothing
- A subscriber failure after commit leaves the committed state in place
"""

from uuid import uuid4

import pytest

from src.adapters.repository.memory import InMemoryDatabase, InMemoryUnitOfWork
from src.application.dispatch import EventDispatchError, InMemoryEventBus
from src.domain.events import CodeGenerated, UserCreated
from src.domain.exceptions import UserNotFound
from src.domain.security import SecurityManager
from src.domain.user import User, UserManager
from src.domain.values import Credentials, Email, HashedPassword, Purpose, SecurityLevel, Username
from tests.fakes import FakeClock, RecordingSubscriber, SequentialCodeGenerator


def new_user(manager: UserManager, uow: InMemoryUnitOfWork, email: str = "alice@example.com") -> User:
    credentials = Credentials(Email.from_string(email), HashedPassword.encode("correct-horse", 4))
    return manager.create(uuid4(), Username.from_string("alice"), credentials, uow.users)


@pytest.fixture
def user_manager(clock: FakeClock) -> UserManager:
    return UserManager(clock=clock)


class TestDeferredDispatch:
    def test_nothing_published_before_commit(
        self, uow: InMemoryUnitOfWork, user_manager: UserManager, recorder: RecordingSubscriber
    ) -> None:
        user = new_user(user_manager, uow)

        uow.users.store(user)

        assert recorder.events == []

    def test_commit_persists_then_publishes(
        self,
        uow: InMemoryUnitOfWork,
        database: InMemoryDatabase,
        user_manager: UserManager,
        recorder: RecordingSubscriber,
    ) -> None:
        user = new_user(user_manager, uow)
        uow.users.store(user)

        uow.commit()

        assert user.id in database.users
        assert [type(event) for event in recorder.events] == [UserCreated]
        assert user.pending_events == ()

    def test_subscriber_sees_committed_state(
        self, database: InMemoryDatabase, user_manager: UserManager
    ) -> None:
        seen: list[bool] = []
        bus = InMemoryEventBus()
        bus.subscribe(UserCreated, lambda event: seen.append(event.aggregate_id in database.users))
        uow = InMemoryUnitOfWork(database, bus)
        uow.users.store(new_user(user_manager, uow))

        uow.commit()

        assert seen == [True]

    def test_events_recorded_after_store_are_collected_at_commit(
        self,
        uow: InMemoryUnitOfWork,
        user_manager: UserManager,
        recorder: RecordingSubscriber,
        clock: FakeClock,
        generator: SequentialCodeGenerator,
    ) -> None:
        user = new_user(user_manager, uow)
        uow.users.store(user)
        uow.commit()
        recorder.events.clear()

        loaded = uow.users.get(user.id)
        challenge = SecurityManager(generator=generator, clock=clock).generate(
            loaded.id, Purpose.TWO_FACTOR, 6, SecurityLevel.LOW, uow.challenges
        )
        uow.challenges.store(challenge)
        user_manager.log_out(loaded)
        uow.commit()

        assert {type(event).__name__ for event in recorder.events} == {
            "CodeGenerated",
            "UserLoggedOut",
        }


class TestRollback:
    def test_rollback_discards_state_and_events(
        self,
        uow: InMemoryUnitOfWork,
        database: InMemoryDatabase,
        user_manager: UserManager,
        recorder: RecordingSubscriber,
    ) -> None:
        user = new_user(user_manager, uow)
        uow.users.store(user)

        uow.rollback()
        uow.commit()

        assert database.users == {}
        assert recorder.events == []
        assert user.pending_events == ()

    def test_exception_inside_context_rolls_back(
        self,
        uow: InMemoryUnitOfWork,
        database: InMemoryDatabase,
        user_manager: UserManager,
        recorder: RecordingSubscriber,
    ) -> None:
        with pytest.raises(RuntimeError), uow:
            uow.users.store(new_user(user_manager, uow))
            raise RuntimeError("handler failed")

        assert database.users == {}
        assert recorder.events == []

    def test_end_rolls_back_uncommitted_work(
        self,
        uow: InMemoryUnitOfWork,
        database: InMemoryDatabase,
        user_manager: UserManager,
        recorder: RecordingSubscriber,
    ) -> None:
        uow.users.store(new_user(user_manager, uow))

        uow.end()

        assert database.users == {}
        assert recorder.events == []

    def test_end_after_commit_publishes_nothing_twice(
        self, uow: InMemoryUnitOfWork, user_manager: UserManager, recorder: RecordingSubscriber
    ) -> None:
        uow.users.store(new_user(user_manager, uow))
        uow.commit()

        uow.end()

        assert len(recorder.events) == 1

    def test_second_commit_without_changes_publishes_nothing(
        self, uow: InMemoryUnitOfWork, user_manager: UserManager, recorder: RecordingSubscriber
    ) -> None:
        uow.users.store(new_user(user_manager, uow))
        uow.commit()
        published = len(recorder.events)

        uow.commit()

        assert published == 1
        assert len(recorder.events) == published

    def test_uncommitted_user_invisible_to_other_unit_of_work(
        self, uow: InMemoryUnitOfWork, database: InMemoryDatabase, user_manager: UserManager
    ) -> None:
        user = new_user(user_manager, uow)
        uow.users.store(user)
        other = InMemoryUnitOfWork(database, InMemoryEventBus())

        with pytest.raises(UserNotFound):
            other.users.get(user.id)


class TestDispatchFailure:
    def test_failed_subscriber_does_not_undo_commit(
        self, database: InMemoryDatabase, user_manager: UserManager
    ) -> None:
        bus = InMemoryEventBus()

        def broken(event: UserCreated) -> None:
            raise ConnectionError("mail server down")

        bus.subscribe(UserCreated, broken)
        uow = InMemoryUnitOfWork(database, bus)
        user = new_user(user_manager, uow)
        uow.users.store(user)

        with pytest.raises(EventDispatchError) as exc_info:
            uow.commit()

        assert user.id in database.users
        assert isinstance(exc_info.value.failures[0][1], ConnectionError)
        assert len(uow.collector) == 0

    def test_generated_codes_published_only_after_commit(
        self,
        uow: InMemoryUnitOfWork,
        user_manager: UserManager,
        recorder: RecordingSubscriber,
        clock: FakeClock,
        generator: SequentialCodeGenerator,
    ) -> None:
        user = new_user(user_manager, uow)
        uow.users.store(user)
        uow.commit()
        challenge = SecurityManager(generator=generator, clock=clock).generate(
            user.id, Purpose.EMAIL_VERIFICATION, 6, SecurityLevel.LOW, uow.challenges
        )
        uow.challenges.store(challenge)

        assert recorder.of_type(CodeGenerated) == []
        uow.commit()
        assert len(recorder.of_type(CodeGenerated)) == 1
