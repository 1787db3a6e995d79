"""
Message bus - Routes a command or query to its single handler.

Exceptions raised by a handler reach the caller unchanged.
"""

from collections.abc import Callable, Mapping
from typing import Any


class HandlerNotFound(LookupError):
    """No handler is registered for the message type."""

    def __init__(self, message_type: type) -> None:
        super().__init__(f"No handler registered for {message_type.__name__}")
        self.message_type = message_type


class MessageBus:
    def __init__(self, handlers: Mapping[type, Callable[[Any], Any]]) -> None:
        self._handlers = dict(handlers)

    def handle(self, message: object) -> Any:
        """
        Invoke the handler registered for type(message).

        Returns:
            Whatever the handler returns (None for most commands)

        Raises:
            HandlerNotFound: If the message type is not registered
        """
        handler = self._handlers.get(type(message))
        if handler is None:
            raise HandlerNotFound(type(message))
        return handler(message)
