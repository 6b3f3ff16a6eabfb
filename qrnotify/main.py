"""Main FastAPI application for QR Notify."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from qrnotify import config
from qrnotify.rate_limit import limiter, rate_limit_exceeded_handler
from qrnotify.routers import health, notifications
from qrnotify.services.dispatch import ConsoleDispatcher
from qrnotify.services.limiter import (
    AdmissionGate,
    CounterPurger,
    InMemoryCounterStore,
    RateLimitConfig,
    build_counter_store,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the counter store and gate once; close the store on shutdown."""
    store = build_counter_store()
    app.state.counter_store = store
    rate_config = RateLimitConfig.from_env()
    app.state.gate = AdmissionGate(store, rate_config, timeout=config.COUNTER_STORE_TIMEOUT)
    app.state.dispatcher = ConsoleDispatcher()
    logger.info(
        "Notification limits: %d normal / %d critical per %s, %d ms between sends",
        rate_config.max_normal_per_window,
        rate_config.max_critical_per_window,
        rate_config.window_label,
        rate_config.min_delay_ms,
    )

    purger = None
    if isinstance(store, InMemoryCounterStore):
        purger = CounterPurger(store, interval=config.COUNTER_PURGE_INTERVAL)
        await purger.start()
    app.state.purger = purger
    if rate_config.max_batches_per_target is not None:
        logger.info(
            "Per-target cap: %d batches per %s",
            rate_config.max_batches_per_target,
            rate_config.window_label,
        )
    try:
        yield
    finally:
        if purger is not None:
            await purger.stop()
        await store.close()


app = FastAPI(
    title="QR Notify API",
    description="Notify vehicle owners through QR codes, with per-requester rate limits",
    version=config.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.include_router(health.router)
app.include_router(notifications.router)
