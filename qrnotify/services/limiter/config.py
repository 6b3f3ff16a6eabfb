"""
Rate limiter configuration.

One immutable RateLimitConfig per deployment. The defaults mirror the
environment defaults in qrnotify.config: three normal and two critical
notifications per day, at least three seconds apart.
"""

from __future__ import annotations

from dataclasses import dataclass

from qrnotify import config as app_config

DAY_MS = 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class RateLimitConfig:
    window_ms: int = DAY_MS
    max_normal_per_window: int = 3
    max_critical_per_window: int = 2
    min_delay_ms: int = 3000
    # Admitted batches per target (QR token) per window, across all requesters.
    # None disables the cap.
    max_batches_per_target: int | None = 10

    def __post_init__(self) -> None:
        if self.window_ms <= 0:
            raise ValueError(f"window_ms must be positive, got {self.window_ms}")
        if self.max_batches_per_target is not None and self.max_batches_per_target < 0:
            raise ValueError(
                f"max_batches_per_target must not be negative, got {self.max_batches_per_target}"
            )
        for name in ("max_normal_per_window", "max_critical_per_window", "min_delay_ms"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must not be negative, got {value}")

    @classmethod
    def from_env(cls) -> RateLimitConfig:
        """Build the config from the RATE_LIMIT_* and OWNER_DAILY_LIMIT settings."""
        return cls(
            window_ms=app_config.RATE_LIMIT_WINDOW_MS,
            max_normal_per_window=app_config.RATE_LIMIT_MAX_NORMAL,
            max_critical_per_window=app_config.RATE_LIMIT_MAX_CRITICAL,
            min_delay_ms=app_config.RATE_LIMIT_DELAY_MS,
            max_batches_per_target=app_config.OWNER_DAILY_LIMIT or None,
        )

    @property
    def window_label(self) -> str:
        """Human-readable window length, e.g. "day" or "10 minutes"."""
        if self.window_ms == DAY_MS:
            return "day"
        if self.window_ms % DAY_MS == 0:
            return f"{self.window_ms // DAY_MS} days"
        if self.window_ms % 3_600_000 == 0:
            hours = self.window_ms // 3_600_000
            return "hour" if hours == 1 else f"{hours} hours"
        if self.window_ms % 60_000 == 0:
            minutes = self.window_ms // 60_000
            return "minute" if minutes == 1 else f"{minutes} minutes"
        return f"{self.window_ms} ms"
