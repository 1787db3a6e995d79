"""
Domain layer - Pure business logic with zero framework imports.

This package contains the aggregates, business rules and domain events
for security codes and the user account lifecycle. It defines its own
port interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .aggregate import AggregateRoot
from .exceptions import (
    BusinessRuleViolation,
    DomainError,
    FormatError,
    InvalidCredentials,
    NotFoundError,
    StateConflictError,
)
from .ports import CodeGenerator, EventBus, SecurityRepository, UserRepository
from .security import SecurityChallenge, SecurityCode, SecurityManager
from .user import User, UserManager, UserOperation, UserStatusManager
from .values import CodeStatus, Email, HashedPassword, Purpose, SecurityLevel, Username

__all__ = [
    "AggregateRoot",
    "BusinessRuleViolation",
    "CodeGenerator",
    "CodeStatus",
    "DomainError",
    "Email",
    "EventBus",
    "FormatError",
    "HashedPassword",
    "InvalidCredentials",
    "NotFoundError",
    "Purpose",
    "SecurityChallenge",
    "SecurityCode",
    "SecurityLevel",
    "SecurityManager",
    "SecurityRepository",
    "StateConflictError",
    "User",
    "UserManager",
    "UserOperation",
    "UserRepository",
    "UserStatusManager",
    "Username",
]
