"""
API v1 package.

Contains versioned API routes for user accounts and security codes.
"""

from src.api.v1.routes import router

__all__ = ["router"]
