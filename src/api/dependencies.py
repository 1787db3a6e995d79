"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting the unit of work
and the message bus into routes. One unit of work spans one request.
"""

from collections.abc import Iterator

from fastapi import Depends, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresUnitOfWork
from src.application.bootstrap import build_message_bus
from src.application.message_bus import MessageBus
from src.application.unit_of_work import AbstractUnitOfWork
from src.config.settings import Settings, get_settings
from src.domain.ports import EventBus


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_event_bus(request: Request) -> EventBus:
    """Get the process-wide event bus from app state."""
    return request.app.state.event_bus


def get_unit_of_work(
    pool: ConnectionPool = Depends(get_pool),
    event_bus: EventBus = Depends(get_event_bus),
) -> Iterator[AbstractUnitOfWork]:
    """
    Open a unit of work for the duration of the request.

    An exception raised by the route rolls the unit of work back.
    On normal completion end() publishes anything still collected.
    """
    with PostgresUnitOfWork(pool, event_bus) as uow:
        yield uow
        uow.end()


def get_message_bus(
    uow: AbstractUnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
) -> MessageBus:
    """Create the message bus whose handlers share the request's unit of work."""
    return build_message_bus(uow, settings)
