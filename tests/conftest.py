"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock and a deterministic code generator
- In-memory unit of work and message bus wiring
- Fast bcrypt settings
- A PostgreSQL pool for integration and adversarial tests
"""

from collections.abc import Callable, Iterator
from uuid import UUID, uuid4

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.memory import InMemoryDatabase, InMemoryUnitOfWork
from src.adapters.repository.postgres import run_migrations
from src.application.bootstrap import build_message_bus
from src.application.dispatch import InMemoryEventBus
from src.application.message_bus import MessageBus
from src.application.messages import SignUpCommand
from src.config.settings import Settings, get_settings
from src.domain.events import DomainEvent
from tests.fakes import FakeClock, RecordingSubscriber, SequentialCodeGenerator

# bcrypt's minimum work factor keeps hashing fast in tests
TEST_BCRYPT_COST = 4


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def generator() -> SequentialCodeGenerator:
    return SequentialCodeGenerator()


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the environment and any .env file."""
    return Settings(_env_file=None, bcrypt_cost=TEST_BCRYPT_COST)


@pytest.fixture
def recorder() -> RecordingSubscriber:
    return RecordingSubscriber()


@pytest.fixture
def event_bus(recorder: RecordingSubscriber) -> InMemoryEventBus:
    bus = InMemoryEventBus()
    bus.subscribe(DomainEvent, recorder)
    return bus


@pytest.fixture
def database() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def uow(database: InMemoryDatabase, event_bus: InMemoryEventBus) -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork(database, event_bus)


@pytest.fixture
def message_bus(
    uow: InMemoryUnitOfWork,
    settings: Settings,
    clock: FakeClock,
    generator: SequentialCodeGenerator,
) -> MessageBus:
    return build_message_bus(uow, settings, clock=clock, generator=generator)


@pytest.fixture
def sign_up(message_bus: MessageBus) -> Callable[..., UUID]:
    """Factory registering a user through the message bus."""

    def _sign_up(
        email: str = "alice@example.com",
        password: str = "correct-horse",
        username: str = "alice",
    ) -> UUID:
        return message_bus.handle(
            SignUpCommand(user_id=uuid4(), username=username, email=email, password=password)
        )

    return _sign_up


@pytest.fixture(scope="session")
def pool() -> Iterator[ConnectionPool]:
    """
    Connection pool for tests against a real PostgreSQL.

    Skips the requesting test when the database is not reachable.
    """
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=20,
        open=False,
    )
    try:
        pool.open(wait=True, timeout=3)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Iterator[None]:
    """Empty every table before the test."""
    with pool.connection() as conn:
        conn.execute("TRUNCATE security_codes, security_challenges, users")
    yield
