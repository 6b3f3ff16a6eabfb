"""
Hand-off point to the notification delivery transports.

Delivery itself (web push, Telegram) lives outside this service. The default
dispatcher only logs what *would* be delivered, which is enough for local
development and tests.
"""

from __future__ import annotations

import logging
from typing import Protocol

from qrnotify.services.categories import NotificationCategory

logger = logging.getLogger(__name__)


class Dispatcher(Protocol):
    async def dispatch(self, target_id: str, categories: list[NotificationCategory]) -> None:
        """Deliver an admitted batch. Raise on delivery failure."""
        ...


class ConsoleDispatcher:
    """Logs each admitted notification instead of delivering it."""

    async def dispatch(self, target_id: str, categories: list[NotificationCategory]) -> None:
        for category in categories:
            logger.info(
                "[console] notification %s (%s) for target %s",
                category.key,
                category.severity.value,
                target_id,
            )
