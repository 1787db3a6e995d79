"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.v1 import router as v1_router
from src.application.bootstrap import build_event_bus
from src.application.dispatch import EventDispatchError
from src.config.settings import get_settings
from src.domain.exceptions import (
    BusinessRuleViolation,
    ConfigurationError,
    DomainError,
    FormatError,
    InvalidCredentials,
    NotFoundError,
    StateConflictError,
)

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "User accounts and one-time security codes",
    },
]

# Most specific class first; the first isinstance match wins
# 422 is written literally; Starlette renamed its constant
ERROR_STATUS = (
    (FormatError, 422),
    (ConfigurationError, 422),
    (BusinessRuleViolation, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (StateConflictError, status.HTTP_409_CONFLICT),
    (InvalidCredentials, status.HTTP_401_UNAUTHORIZED),
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Configures logging
    - Creates database connection pool and event bus on startup
    - Runs migrations on startup
    - Closes connection pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    # Run migrations
    logger.info("Running database migrations...")
    run_migrations(pool)

    # Store pool and event bus in app state for dependency injection
    app.state.pool = pool
    app.state.event_bus = build_event_bus()

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    pool.close()
    logger.info("Database connection pool closed")


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Translate a domain error into its HTTP status and an ErrorResponse body."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    body: dict[str, object] = {"detail": str(exc)}
    if isinstance(exc, BusinessRuleViolation):
        body = {"detail": exc.message, "code": exc.code}
    logger.info("%s %s -> %d %s", request.method, request.url.path, status_code, type(exc).__name__)
    return JSONResponse(status_code=status_code, content=body)


async def event_dispatch_error_handler(request: Request, exc: EventDispatchError) -> JSONResponse:
    """The state change is committed; only delivery of its events failed."""
    logger.error("Event dispatch failed after commit: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Changes saved but notification delivery failed"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(EventDispatchError, event_dispatch_error_handler)


app = FastAPI(
    title="keyward",
    description="User accounts and one-time security codes with deferred domain events",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    # Validate database connectivity
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
