"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

APP_VERSION = "0.1.0"

# ── Notification rate limiter ─────────────────────────────────────────────

# Rolling window length. Every admitted send pushes the window end forward.
RATE_LIMIT_WINDOW_MS: int = int(os.getenv("RATE_LIMIT_WINDOW_MS", "86400000"))  # 24 hours
RATE_LIMIT_MAX_NORMAL: int = int(os.getenv("RATE_LIMIT_MAX_NORMAL", "3"))
RATE_LIMIT_MAX_CRITICAL: int = int(os.getenv("RATE_LIMIT_MAX_CRITICAL", "2"))

# Minimum gap between two admitted sends for the same (fingerprint, QR token).
RATE_LIMIT_DELAY_MS: int = int(os.getenv("RATE_LIMIT_DELAY_MS", "3000"))

# Admitted batches per QR token per window from all requesters combined.
# 0 disables the cap.
OWNER_DAILY_LIMIT: int = int(os.getenv("OWNER_DAILY_LIMIT", "10"))

# ── Counter store ─────────────────────────────────────────────────────────

REDIS_URL: str = os.getenv("REDIS_URL", "")

# "auto" (default) : Redis when REDIS_URL is set, in-process otherwise
# "memory"         : always in-process (single instance only)
# "redis"          : always Redis (fails at startup without REDIS_URL)
COUNTER_STORE: str = os.getenv("COUNTER_STORE", "auto")

# Upper bound for one counter store round-trip (seconds). Slower calls are
# treated as an outage and the request is denied.
COUNTER_STORE_TIMEOUT: float = float(os.getenv("COUNTER_STORE_TIMEOUT", "2"))

# How often the in-process store drops expired entries (seconds).
COUNTER_PURGE_INTERVAL: float = float(os.getenv("COUNTER_PURGE_INTERVAL", "300"))


def counter_store_backend() -> str:
    """Resolve COUNTER_STORE to either "memory" or "redis"."""
    choice = COUNTER_STORE.lower()
    if choice in ("memory", "redis"):
        return choice
    if choice != "auto":
        raise ValueError(f"Unknown COUNTER_STORE value: {COUNTER_STORE!r}")
    return "redis" if REDIS_URL else "memory"


# ── HTTP ──────────────────────────────────────────────────────────────────

# Coarse per-client request limit in front of the notification gate.
REQUEST_RATE_LIMIT: str = os.getenv("REQUEST_RATE_LIMIT", "60/minute")
