"""
Periodic cleanup for the in-process counter store.

Expired entries are already ignored on read, but keys that are never read
again would stay in memory forever. CounterPurger sweeps them on a timer.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from qrnotify.services.limiter.gate import current_time_ms
from qrnotify.services.limiter.store import InMemoryCounterStore

logger = logging.getLogger(__name__)


class CounterPurger:
    """Runs ``store.purge_expired`` every *interval* seconds."""

    def __init__(self, store: InMemoryCounterStore, *, interval: float) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._store = store
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        self._task = asyncio.create_task(self._loop(), name="counter-purge")
        logger.info("Counter purge started (every %ss)", self._interval)

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            logger.info("Counter purge stopped")

    def purge_once(self) -> int:
        return self._store.purge_expired(current_time_ms())

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.purge_once()
            except Exception:
                logger.exception("Counter purge failed, retrying next interval")
