"""
Unit tests for PostgresUnitOfWork connection handling.

The pool and connection are mocked; no database is required.
"""

from unittest.mock import MagicMock

import pytest
from psycopg.pq import TransactionStatus

from src.adapters.repository.postgres import PostgresUnitOfWork
from src.application.dispatch import InMemoryEventBus


@pytest.fixture
def conn() -> MagicMock:
    return MagicMock()


@pytest.fixture
def pool(conn: MagicMock) -> MagicMock:
    pool = MagicMock()
    pool.getconn.return_value = conn
    return pool


class TestConnectionRelease:
    def test_read_only_transaction_closed_before_release(
        self, pool: MagicMock, conn: MagicMock, event_bus: InMemoryEventBus
    ) -> None:
        """A query opens a transaction but never commits it."""
        conn.info.transaction_status = TransactionStatus.INTRANS

        with PostgresUnitOfWork(pool, event_bus):
            pass

        conn.rollback.assert_called_once()
        pool.putconn.assert_called_once_with(conn)

    def test_idle_connection_released_untouched(
        self, pool: MagicMock, conn: MagicMock, event_bus: InMemoryEventBus
    ) -> None:
        conn.info.transaction_status = TransactionStatus.IDLE

        with PostgresUnitOfWork(pool, event_bus):
            pass

        conn.rollback.assert_not_called()
        pool.putconn.assert_called_once_with(conn)

    def test_connection_released_when_body_raises(
        self, pool: MagicMock, conn: MagicMock, event_bus: InMemoryEventBus
    ) -> None:
        conn.info.transaction_status = TransactionStatus.INERROR

        with pytest.raises(RuntimeError), PostgresUnitOfWork(pool, event_bus):
            raise RuntimeError("handler failed")

        conn.rollback.assert_called()
        pool.putconn.assert_called_once_with(conn)
