"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • an in-process counter store (no Redis)
  • a recording dispatcher (no delivery)
  • slowapi request limiting switched off

The `client` fixture runs the full lifespan, then swaps the gate and the
dispatcher for test instances so each test starts from empty counters.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from qrnotify.dependencies import get_dispatcher, get_gate
from qrnotify.main import app
from qrnotify.services.limiter import AdmissionGate, InMemoryCounterStore, RateLimitConfig
from tests.mocks.services import RecordingDispatcher


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def _test_env(monkeypatch):
    """
    Internal fixture that forces the in-process counter store and disables
    request-level rate limiting so the app lifespan runs without Redis.
    """
    import qrnotify.config as config_mod

    monkeypatch.setattr(config_mod, "COUNTER_STORE", "memory")
    monkeypatch.setattr(config_mod, "REDIS_URL", "")

    # ── Disable rate limiting in tests ────────────────────────────────
    from qrnotify.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)


@pytest.fixture()
def store() -> InMemoryCounterStore:
    return InMemoryCounterStore()


@pytest.fixture()
def rate_config() -> RateLimitConfig:
    """Default production limits."""
    return RateLimitConfig()


@pytest.fixture()
def gate(store: InMemoryCounterStore, rate_config: RateLimitConfig) -> AdmissionGate:
    return AdmissionGate(store, rate_config)


@pytest.fixture()
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture()
def client(_test_env, gate: AdmissionGate, dispatcher: RecordingDispatcher) -> TestClient:
    """
    FastAPI TestClient using the `gate` and `dispatcher` fixtures.

    Uses a context manager so the lifespan runs (store setup/shutdown).
    """
    app.dependency_overrides[get_gate] = lambda: gate
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()
