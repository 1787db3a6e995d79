"""
Shared fixtures for integration tests against PostgreSQL.
"""

import pytest


@pytest.fixture
def db(clean_database: None) -> None:
    """Request a clean PostgreSQL database (skips when unreachable)."""
