"""
Test doubles for the counter store and the dispatcher.

None of them touch the network.
"""

from __future__ import annotations

import asyncio

from qrnotify.services.categories import NotificationCategory
from qrnotify.services.limiter import (
    CounterStoreError,
    Decision,
    InMemoryCounterStore,
    RateLimitConfig,
    RateLimitKey,
    WindowCounters,
)


class FailingCounterStore:
    """Every operation fails as if the backend were unreachable."""

    def __init__(self) -> None:
        self.calls = 0

    async def read_counters(self, key: RateLimitKey, now_ms: int) -> WindowCounters:
        self.calls += 1
        raise CounterStoreError("connection refused")

    async def atomic_admit(
        self,
        key: RateLimitKey,
        normal_delta: int,
        critical_delta: int,
        now_ms: int,
        config: RateLimitConfig,
    ) -> Decision:
        self.calls += 1
        raise CounterStoreError("connection refused")

    async def close(self) -> None:
        pass


class FlakyWriteCounterStore(InMemoryCounterStore):
    """Reads work, admissions fail."""

    async def atomic_admit(self, key, normal_delta, critical_delta, now_ms, config):
        raise CounterStoreError("write failed")


class SlowCounterStore(InMemoryCounterStore):
    """Reads hang for *delay* seconds."""

    def __init__(self, delay: float) -> None:
        super().__init__()
        self._delay = delay

    async def read_counters(self, key, now_ms):
        await asyncio.sleep(self._delay)
        return await super().read_counters(key, now_ms)


class YieldingCounterStore(InMemoryCounterStore):
    """
    Yields to the event loop between the read and the admit, so concurrent
    gates all read the same stale counters before any of them writes.
    """

    async def read_counters(self, key, now_ms):
        counters = await super().read_counters(key, now_ms)
        await asyncio.sleep(0)
        return counters

    async def atomic_admit(self, key, normal_delta, critical_delta, now_ms, config):
        await asyncio.sleep(0)
        return await super().atomic_admit(key, normal_delta, critical_delta, now_ms, config)


class RecordingDispatcher:
    """Keeps every dispatched batch in memory."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, list[NotificationCategory]]] = []

    async def dispatch(self, target_id: str, categories: list[NotificationCategory]) -> None:
        self.sent.append((target_id, list(categories)))


class FailingDispatcher:
    async def dispatch(self, target_id: str, categories: list[NotificationCategory]) -> None:
        raise RuntimeError("telegram unreachable")
