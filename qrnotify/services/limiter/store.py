"""
Counter store interface and the in-process implementation.

A counter store keeps the WindowCounters of every RateLimitKey and expires
all counters of a key together, ``window_ms`` after the last admitted write.
Admission must be one atomic step per key: the store re-runs the window
checks under its own concurrency control, so two racing batches can never
both squeeze past the budget. The per-target counter (all requesters of one
QR token) is checked and bumped in that same step.

InMemoryCounterStore is enough for a single process. Deployments with more
than one instance sharing a budget need RedisCounterStore.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Protocol

from qrnotify.services.limiter.config import RateLimitConfig
from qrnotify.services.limiter.types import (
    Admit,
    Decision,
    RateLimitKey,
    WindowCounters,
    check_target,
    check_window,
)

logger = logging.getLogger(__name__)

_DEFAULT_STRIPES = 64


class CounterStoreError(Exception):
    """The counter store could not be reached or returned an error."""


class CounterStore(Protocol):
    """Protocol that every counter store backend must satisfy."""

    async def read_counters(self, key: RateLimitKey, now_ms: int) -> WindowCounters:
        """Current counters for *key*; all-zero when absent or expired."""
        ...

    async def atomic_admit(
        self,
        key: RateLimitKey,
        normal_delta: int,
        critical_delta: int,
        now_ms: int,
        config: RateLimitConfig,
    ) -> Decision:
        """
        Re-check the window and, if the batch still fits, add the deltas,
        stamp ``now_ms`` as the last send and refresh the expiry to
        ``config.window_ms``. All in one linearizable step per key.
        """
        ...

    async def close(self) -> None:
        ...


@dataclass
class _Entry:
    counters: WindowCounters
    expires_at_ms: int


@dataclass
class _TargetEntry:
    sent: int
    expires_at_ms: int


class InMemoryCounterStore:
    """
    Thread-safe in-process counter store.

    Expiry is evaluated against the ``now_ms`` passed by the caller, so the
    store follows whatever clock the gate uses. Targets are spread over a
    fixed set of lock stripes; every key of one target shares a stripe, so a
    single lock covers both the requester counters and the target counter.
    """

    def __init__(self, stripes: int = _DEFAULT_STRIPES) -> None:
        if stripes < 1:
            raise ValueError("stripes must be at least 1")
        self._entries: dict[RateLimitKey, _Entry] = {}
        self._targets: dict[str, _TargetEntry] = {}
        self._locks = [threading.Lock() for _ in range(stripes)]

    def _lock_for(self, target_id: str) -> threading.Lock:
        return self._locks[hash(target_id) % len(self._locks)]

    def _live_counters(self, key: RateLimitKey, now_ms: int) -> WindowCounters:
        """Caller must hold the target's lock."""
        entry = self._entries.get(key)
        if entry is None:
            return WindowCounters()
        if now_ms >= entry.expires_at_ms:
            del self._entries[key]
            return WindowCounters()
        return entry.counters

    def _live_target(self, target_id: str, now_ms: int) -> _TargetEntry | None:
        """Caller must hold the target's lock."""
        entry = self._targets.get(target_id)
        if entry is not None and now_ms >= entry.expires_at_ms:
            del self._targets[target_id]
            return None
        return entry

    # ── CounterStore protocol ──────────────────────────────────────────

    async def read_counters(self, key: RateLimitKey, now_ms: int) -> WindowCounters:
        with self._lock_for(key.target_id):
            return self._live_counters(key, now_ms)

    async def atomic_admit(
        self,
        key: RateLimitKey,
        normal_delta: int,
        critical_delta: int,
        now_ms: int,
        config: RateLimitConfig,
    ) -> Decision:
        with self._lock_for(key.target_id):
            current = self._live_counters(key, now_ms)
            denial = check_window(current, normal_delta, critical_delta, now_ms, config)
            if denial is not None:
                return denial

            target = self._live_target(key.target_id, now_ms)
            if config.max_batches_per_target is not None:
                denial = check_target(target.sent if target else 0, config)
                if denial is not None:
                    return denial
                # Fixed window from the first admitted batch, not sliding.
                if target is None:
                    target = self._targets[key.target_id] = _TargetEntry(
                        0, now_ms + config.window_ms
                    )
                target.sent += 1

            updated = WindowCounters(
                normal_sent=current.normal_sent + normal_delta,
                critical_sent=current.critical_sent + critical_delta,
                last_sent_at_ms=now_ms,
            )
            self._entries[key] = _Entry(updated, now_ms + config.window_ms)
            return Admit(updated)

    async def close(self) -> None:
        self._entries.clear()
        self._targets.clear()

    # ── Housekeeping ───────────────────────────────────────────────────

    def target_sent(self, target_id: str, now_ms: int) -> int:
        """Admitted batches for *target_id* in its current window."""
        with self._lock_for(target_id):
            entry = self._live_target(target_id, now_ms)
            return entry.sent if entry else 0

    def purge_expired(self, now_ms: int) -> int:
        """Drop every expired entry. Returns how many were removed."""
        removed = 0
        for key, entry in list(self._entries.items()):
            if now_ms < entry.expires_at_ms:
                continue
            with self._lock_for(key.target_id):
                current = self._entries.get(key)
                if current is not None and now_ms >= current.expires_at_ms:
                    del self._entries[key]
                    removed += 1
        for target_id, target in list(self._targets.items()):
            if now_ms < target.expires_at_ms:
                continue
            with self._lock_for(target_id):
                current_target = self._targets.get(target_id)
                if current_target is not None and now_ms >= current_target.expires_at_ms:
                    del self._targets[target_id]
                    removed += 1
        if removed:
            logger.debug("Purged %d expired rate limit entries", removed)
        return removed

    def __len__(self) -> int:
        return len(self._entries) + len(self._targets)
