"""
Console code notifier adapter - Subscribes to CodeGenerated events.

This module logs freshly issued security codes to stdout for demo
purposes, standing in for the email/PDF delivery channel.
"""

import logging

from src.domain.events import CodeGenerated

logger = logging.getLogger(__name__)


class ConsoleCodeNotifier:
    """
    Delivers issued codes via console logging.

    Registered on the event bus for CodeGenerated, so it only ever runs
    after the challenge has been committed.
    """

    def __call__(self, event: CodeGenerated) -> None:
        """
        Log the issued codes (simulates delivery to the user).

        The codes are logged at INFO level to be visible in docker-compose logs.

        Args:
            event: CodeGenerated event of a committed challenge
        """
        logger.info(
            "[SECURITY CODE] user=%s purpose=%s codes=%d",
            event.user_id,
            event.purpose.value,
            len(event.codes),
        )
        for code in event.codes:
            logger.info("[SECURITY CODE] %s", code)
