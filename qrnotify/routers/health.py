"""
Liveness endpoint. Also reports which counter store backs the limiter, so a
deployment running on in-process counters is easy to spot.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from qrnotify import config
from qrnotify.models import HealthResponse

router = APIRouter(prefix="/api", tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    operation_id="getHealth",
    summary="Service status and counter store backend",
)
async def get_health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=config.APP_VERSION,
        environment=config.ENVIRONMENT,
        counter_store=config.counter_store_backend(),
        timestamp=datetime.now(timezone.utc),
    )
