"""
Notification rate limiter: admission gate plus the counter stores behind it.
"""

from __future__ import annotations

import logging

from qrnotify import config as app_config
from qrnotify.services.limiter.config import RateLimitConfig
from qrnotify.services.limiter.gate import AdmissionGate
from qrnotify.services.limiter.purger import CounterPurger
from qrnotify.services.limiter.redis_store import RedisCounterStore
from qrnotify.services.limiter.store import (
    CounterStore,
    CounterStoreError,
    InMemoryCounterStore,
)
from qrnotify.services.limiter.types import (
    Admit,
    Decision,
    Deny,
    DenyReason,
    RateLimitKey,
    WindowCounters,
)

logger = logging.getLogger(__name__)

__all__ = [
    "Admit",
    "AdmissionGate",
    "CounterPurger",
    "CounterStore",
    "CounterStoreError",
    "Decision",
    "Deny",
    "DenyReason",
    "InMemoryCounterStore",
    "RateLimitConfig",
    "RateLimitKey",
    "RedisCounterStore",
    "WindowCounters",
    "build_counter_store",
]


def build_counter_store() -> CounterStore:
    """Create the counter store selected by COUNTER_STORE / REDIS_URL."""
    backend = app_config.counter_store_backend()
    if backend == "redis":
        if not app_config.REDIS_URL:
            raise ValueError("COUNTER_STORE=redis requires REDIS_URL")
        return RedisCounterStore.from_url(
            app_config.REDIS_URL,
            socket_timeout=app_config.COUNTER_STORE_TIMEOUT,
        )

    logger.warning(
        "Using in-process rate limit counters; budgets are not shared "
        "between instances. Set REDIS_URL for multi-instance deployments."
    )
    return InMemoryCounterStore()
