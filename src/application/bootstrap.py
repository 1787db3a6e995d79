"""
Bootstrap - Wires handlers, managers and the event bus together.
"""

from collections.abc import Callable
from datetime import datetime

from src.adapters.smtp.console import ConsoleCodeNotifier
from src.application import handlers, messages
from src.application.dispatch import InMemoryEventBus
from src.application.message_bus import MessageBus
from src.application.unit_of_work import AbstractUnitOfWork
from src.config.settings import Settings
from src.domain.code_generator import SecureCodeGenerator
from src.domain.events import CodeGenerated
from src.domain.ports import CodeGenerator
from src.domain.security import SecurityManager
from src.domain.user import UserManager, UserStatusManager
from src.domain.values import utc_now


def build_event_bus() -> InMemoryEventBus:
    """Create the process-wide event bus with its default subscribers."""
    event_bus = InMemoryEventBus()
    event_bus.subscribe(CodeGenerated, ConsoleCodeNotifier())
    return event_bus


def build_message_bus(
    uow: AbstractUnitOfWork,
    settings: Settings,
    clock: Callable[[], datetime] = utc_now,
    generator: CodeGenerator | None = None,
) -> MessageBus:
    """Create a message bus whose handlers all share one unit of work."""
    security_manager = SecurityManager(
        generator=generator or SecureCodeGenerator(),
        clock=clock,
        challenge_limit=settings.challenge_limit,
        ttl_months=settings.challenge_ttl_months,
    )
    user_manager = UserManager(clock=clock)
    status_manager = UserStatusManager(clock=clock)
    cost = settings.bcrypt_cost

    return MessageBus(
        {
            messages.GenerateCodesCommand: handlers.GenerateCodesHandler(
                uow,
                security_manager,
                quantity=settings.codes_per_challenge,
                allow_duplicates=settings.allow_duplicate_characters,
            ),
            messages.RedeemCodeCommand: handlers.RedeemCodeHandler(uow, security_manager),
            messages.InvalidateCodesCommand: handlers.InvalidateCodesHandler(uow, security_manager),
            messages.SignUpCommand: handlers.SignUpHandler(uow, user_manager, cost),
            messages.SignInCommand: handlers.SignInHandler(uow, user_manager),
            messages.LogoutCommand: handlers.LogoutHandler(uow, user_manager),
            messages.ChangeEmailCommand: handlers.ChangeEmailHandler(uow, user_manager),
            messages.ChangePasswordCommand: handlers.ChangePasswordHandler(uow, user_manager, cost),
            messages.ResetPasswordCommand: handlers.ResetPasswordHandler(
                uow, user_manager, security_manager, cost
            ),
            messages.ChangeStatusCommand: handlers.ChangeStatusHandler(uow, status_manager),
            messages.FindUserByIdQuery: handlers.FindUserByIdHandler(uow),
            messages.FindActiveChallengeQuery: handlers.FindActiveChallengeHandler(uow),
        }
    )
