"""
Value types shared by the admission gate and the counter stores.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from qrnotify.services.limiter.config import RateLimitConfig

KEY_PREFIX = "rate_limit"
TARGET_KEY_PREFIX = "owner_limit"


@dataclass(frozen=True)
class RateLimitKey:
    """One budget scope: a requester fingerprint against one target."""

    fingerprint: str
    target_id: str

    def __post_init__(self) -> None:
        if not isinstance(self.fingerprint, str) or not self.fingerprint:
            raise ValueError("fingerprint must be a non-empty string")
        if not isinstance(self.target_id, str) or not self.target_id:
            raise ValueError("target_id must be a non-empty string")

    @property
    def storage_key(self) -> str:
        return f"{KEY_PREFIX}:{self.fingerprint}:{self.target_id}"

    @property
    def target_storage_key(self) -> str:
        """Counter shared by every requester of this target."""
        return f"{TARGET_KEY_PREFIX}:{self.target_id}"


@dataclass(frozen=True)
class WindowCounters:
    normal_sent: int = 0
    critical_sent: int = 0
    last_sent_at_ms: int | None = None  # None = nothing admitted in this window


class DenyReason(str, Enum):
    CRITICAL_BATCH_EXCEEDS_WINDOW_BUDGET = "critical_batch_exceeds_window_budget"
    TOO_SOON = "too_soon"
    NORMAL_BUDGET_EXCEEDED = "normal_budget_exceeded"
    CRITICAL_BUDGET_EXCEEDED = "critical_budget_exceeded"
    TARGET_BUDGET_EXCEEDED = "target_budget_exceeded"
    LIMITER_UNAVAILABLE = "limiter_unavailable"


@dataclass(frozen=True)
class Admit:
    counters: WindowCounters

    admitted = True

    @property
    def normal_sent(self) -> int:
        return self.counters.normal_sent

    @property
    def critical_sent(self) -> int:
        return self.counters.critical_sent


@dataclass(frozen=True)
class Deny:
    reason: DenyReason
    retry_after_ms: int | None = None

    admitted = False


Decision = Union[Admit, Deny]


def check_window(
    counters: WindowCounters,
    normal_count: int,
    critical_count: int,
    now_ms: int,
    config: RateLimitConfig,
) -> Deny | None:
    """
    Minimum-delay and budget checks against the current window.

    Returns the first failing check as a Deny, or None when the batch fits.
    Order: delay, then normal budget, then critical budget.
    """
    last = counters.last_sent_at_ms
    if last is not None:
        elapsed = now_ms - last
        if elapsed < config.min_delay_ms:
            return Deny(DenyReason.TOO_SOON, retry_after_ms=config.min_delay_ms - elapsed)

    if counters.normal_sent + normal_count > config.max_normal_per_window:
        return Deny(DenyReason.NORMAL_BUDGET_EXCEEDED)

    if counters.critical_sent + critical_count > config.max_critical_per_window:
        return Deny(DenyReason.CRITICAL_BUDGET_EXCEEDED)

    return None


def check_target(target_sent: int, config: RateLimitConfig) -> Deny | None:
    """Per-target cap, checked after every per-requester check has passed."""
    limit = config.max_batches_per_target
    if limit is not None and target_sent + 1 > limit:
        return Deny(DenyReason.TARGET_BUDGET_EXCEEDED)
    return None
