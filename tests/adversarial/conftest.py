"""
Shared fixtures for adversarial tests.

Provides common test infrastructure for concurrent abuse scenarios.
"""

from collections.abc import Callable
from uuid import UUID, uuid4

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresUnitOfWork
from src.application.bootstrap import build_message_bus
from src.application.dispatch import InMemoryEventBus
from src.application.messages import SignUpCommand
from src.config.settings import Settings

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture(autouse=True)
def _clean(clean_database: None) -> None:
    """Clean all tables before each test."""


@pytest.fixture
def run_command(
    pool: ConnectionPool, event_bus: InMemoryEventBus, settings: Settings
) -> Callable[[object], object]:
    """Handle one message in its own unit of work, like one HTTP request."""

    def _run(message: object) -> object:
        with PostgresUnitOfWork(pool, event_bus) as uow:
            result = build_message_bus(uow, settings).handle(message)
            uow.end()
            return result

    return _run


@pytest.fixture
def user_id(run_command: Callable[[object], object]) -> UUID:
    """A registered user to attack."""
    return run_command(
        SignUpCommand(
            user_id=uuid4(),
            username="victim",
            email="victim@example.com",
            password="correct-horse",
        )
    )
