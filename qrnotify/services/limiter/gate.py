"""
Admission gate for QR notifications.

Decides whether one requester may send a batch of notifications about one
target right now. Checks run in a fixed order so the reason a user sees is
deterministic:

1.  The batch alone asks for more critical notifications than a whole
    window allows  → ``critical_batch_exceeds_window_budget``
    (no store round-trip).
2.  The previous admitted batch was less than ``min_delay_ms`` ago
    → ``too_soon`` with the exact remaining wait.
3.  Normal budget for the window would be exceeded
    → ``normal_budget_exceeded``.
4.  Critical budget for the window would be exceeded
    → ``critical_budget_exceeded``.
5.  The target already received ``max_batches_per_target`` batches this
    window from all requesters together → ``target_budget_exceeded``
    (checked only inside the atomic admit).

If everything fits, the store adds the batch to the counters atomically.
Any store failure or timeout denies with ``limiter_unavailable``: an outage
must never turn into unlimited sends.

Policy denials are ordinary return values. Only malformed input (empty
batch, bad key) raises.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable

from qrnotify.services.categories import NotificationCategory, classify
from qrnotify.services.limiter.config import RateLimitConfig
from qrnotify.services.limiter.store import CounterStore, CounterStoreError
from qrnotify.services.limiter.types import (
    Decision,
    Deny,
    DenyReason,
    RateLimitKey,
    check_window,
)

_DEFAULT_TIMEOUT = 2.0


def current_time_ms() -> int:
    return int(time.time() * 1000)


def _partition(categories: Iterable[int | NotificationCategory]) -> tuple[int, int]:
    """Count (normal, critical) categories, dropping unknown ids."""
    resolved: list[NotificationCategory] = []
    raw_ids: list[int] = []
    for item in categories:
        if isinstance(item, NotificationCategory):
            resolved.append(item)
        else:
            raw_ids.append(item)
    resolved.extend(classify(raw_ids))

    critical = sum(1 for c in resolved if c.critical)
    return len(resolved) - critical, critical


class AdmissionGate:
    """
    Per-(fingerprint, target) admission control in front of dispatch.

    The gate is stateless apart from the injected counter store and its
    read-only config, so one instance can serve every request.
    """

    def __init__(
        self,
        store: CounterStore,
        config: RateLimitConfig | None = None,
        *,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._store = store
        self._config = config if config is not None else RateLimitConfig()
        self._timeout = timeout

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    @property
    def store(self) -> CounterStore:
        return self._store

    async def evaluate(
        self,
        key: RateLimitKey,
        categories: Iterable[int | NotificationCategory],
        now_ms: int | None = None,
        config: RateLimitConfig | None = None,
    ) -> Decision:
        categories = list(categories)
        if not categories:
            raise ValueError("At least one notification category is required")
        if not isinstance(key, RateLimitKey):
            raise TypeError(f"Expected RateLimitKey, got {type(key).__name__}")

        cfg = config if config is not None else self._config
        at = current_time_ms() if now_ms is None else now_ms

        normal_count, critical_count = _partition(categories)

        if critical_count > cfg.max_critical_per_window:
            return Deny(DenyReason.CRITICAL_BATCH_EXCEEDS_WINDOW_BUDGET)

        try:
            counters = await asyncio.wait_for(
                self._store.read_counters(key, at), self._timeout
            )
            denial = check_window(counters, normal_count, critical_count, at, cfg)
            if denial is not None:
                return denial

            # A committed write stays committed even if we time out waiting.
            return await asyncio.wait_for(
                self._store.atomic_admit(key, normal_count, critical_count, at, cfg),
                self._timeout,
            )
        except (CounterStoreError, asyncio.TimeoutError):
            return Deny(DenyReason.LIMITER_UNAVAILABLE)
