"""
Request-level rate limiting using slowapi.

This is a coarse flood guard per client in front of the notification
gate; the per-QR budgets live in qrnotify.services.limiter.

The limiter keys on the client IP only. X-Fingerprint is client-chosen and
scopes the per-QR budgets, never this guard.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from qrnotify.config import REQUEST_RATE_LIMIT

FINGERPRINT_HEADER = "x-fingerprint"


def get_client_fingerprint(request: Request) -> str:
    """Client-supplied fingerprint, or the remote address when absent."""
    fingerprint = request.headers.get(FINGERPRINT_HEADER, "").strip()
    return fingerprint or get_remote_address(request)


limiter = Limiter(key_func=get_remote_address, default_limits=[REQUEST_RATE_LIMIT])

# Named rate string for use in @limiter.limit() decorators
DEFAULT = REQUEST_RATE_LIMIT


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )
