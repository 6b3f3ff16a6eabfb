"""Tests for rate limiter configuration and counter store selection."""

import pytest

import qrnotify.config as config_mod
from qrnotify.services.limiter import (
    InMemoryCounterStore,
    RateLimitConfig,
    RedisCounterStore,
    build_counter_store,
)


class TestRateLimitConfig:
    def test_defaults(self):
        cfg = RateLimitConfig()
        assert cfg.window_ms == 86_400_000
        assert cfg.max_normal_per_window == 3
        assert cfg.max_critical_per_window == 2
        assert cfg.min_delay_ms == 3000
        assert cfg.max_batches_per_target == 10

    def test_from_env(self, monkeypatch):
        monkeypatch.setattr(config_mod, "RATE_LIMIT_WINDOW_MS", 60_000)
        monkeypatch.setattr(config_mod, "RATE_LIMIT_MAX_NORMAL", 5)
        monkeypatch.setattr(config_mod, "RATE_LIMIT_MAX_CRITICAL", 1)
        monkeypatch.setattr(config_mod, "RATE_LIMIT_DELAY_MS", 0)
        monkeypatch.setattr(config_mod, "OWNER_DAILY_LIMIT", 4)

        cfg = RateLimitConfig.from_env()

        assert cfg == RateLimitConfig(
            window_ms=60_000,
            max_normal_per_window=5,
            max_critical_per_window=1,
            min_delay_ms=0,
            max_batches_per_target=4,
        )

    def test_zero_owner_limit_disables_cap(self, monkeypatch):
        monkeypatch.setattr(config_mod, "OWNER_DAILY_LIMIT", 0)
        assert RateLimitConfig.from_env().max_batches_per_target is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"window_ms": 0},
            {"max_normal_per_window": -1},
            {"max_critical_per_window": -1},
            {"min_delay_ms": -5},
            {"max_batches_per_target": -1},
        ],
    )
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RateLimitConfig(**kwargs)

    def test_is_immutable(self):
        cfg = RateLimitConfig()
        with pytest.raises(AttributeError):
            cfg.window_ms = 1  # type: ignore[misc]

    @pytest.mark.parametrize(
        "window_ms, label",
        [
            (86_400_000, "day"),
            (172_800_000, "2 days"),
            (3_600_000, "hour"),
            (7_200_000, "2 hours"),
            (60_000, "minute"),
            (600_000, "10 minutes"),
            (1500, "1500 ms"),
        ],
    )
    def test_window_label(self, window_ms, label):
        assert RateLimitConfig(window_ms=window_ms).window_label == label


class TestCounterStoreSelection:
    def test_auto_without_redis_url_is_memory(self, monkeypatch):
        monkeypatch.setattr(config_mod, "COUNTER_STORE", "auto")
        monkeypatch.setattr(config_mod, "REDIS_URL", "")
        assert config_mod.counter_store_backend() == "memory"
        assert isinstance(build_counter_store(), InMemoryCounterStore)

    def test_auto_with_redis_url_is_redis(self, monkeypatch):
        monkeypatch.setattr(config_mod, "COUNTER_STORE", "auto")
        monkeypatch.setattr(config_mod, "REDIS_URL", "redis://localhost:6379/0")
        assert config_mod.counter_store_backend() == "redis"
        assert isinstance(build_counter_store(), RedisCounterStore)

    def test_memory_overrides_redis_url(self, monkeypatch):
        monkeypatch.setattr(config_mod, "COUNTER_STORE", "memory")
        monkeypatch.setattr(config_mod, "REDIS_URL", "redis://localhost:6379/0")
        assert isinstance(build_counter_store(), InMemoryCounterStore)

    def test_redis_without_url_fails(self, monkeypatch):
        monkeypatch.setattr(config_mod, "COUNTER_STORE", "redis")
        monkeypatch.setattr(config_mod, "REDIS_URL", "")
        with pytest.raises(ValueError):
            build_counter_store()

    def test_unknown_backend_fails(self, monkeypatch):
        monkeypatch.setattr(config_mod, "COUNTER_STORE", "memcached")
        with pytest.raises(ValueError):
            config_mod.counter_store_backend()
