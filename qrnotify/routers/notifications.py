"""
Notification endpoints (public, reached from the QR page).

Every send goes through the admission gate first. Policy denials become
429 responses with a wait hint; a limiter outage becomes 503 so it can be
told apart from user behaviour.
"""

import logging
import math

from fastapi import APIRouter, HTTPException, Request, status

from qrnotify.dependencies import Gate, NotificationDispatcher
from qrnotify.models import (
    CategoriesResponse,
    Error,
    NotificationCategoryInfo,
    SendNotificationRequest,
    SendNotificationResponse,
)
from qrnotify.rate_limit import DEFAULT, get_client_fingerprint, limiter
from qrnotify.services.categories import CATEGORIES, classify
from qrnotify.services.limiter import (
    Deny,
    DenyReason,
    RateLimitConfig,
    RateLimitKey,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def deny_message(decision: Deny, config: RateLimitConfig) -> str:
    """User-facing text for a denial."""
    window = config.window_label
    if decision.reason in (
        DenyReason.CRITICAL_BATCH_EXCEEDS_WINDOW_BUDGET,
        DenyReason.CRITICAL_BUDGET_EXCEEDED,
    ):
        return f"Maximum {config.max_critical_per_window} critical notifications per {window}"
    if decision.reason is DenyReason.NORMAL_BUDGET_EXCEEDED:
        return f"Maximum {config.max_normal_per_window} normal notifications per {window}"
    if decision.reason is DenyReason.TOO_SOON:
        seconds = math.ceil((decision.retry_after_ms or 0) / 1000)
        return f"Please wait {seconds} seconds before sending again"
    if decision.reason is DenyReason.TARGET_BUDGET_EXCEEDED:
        return (
            f"Owner has reached the limit of {config.max_batches_per_target} "
            f"notifications per {window}"
        )
    return "Notification limiter is temporarily unavailable, please try again later"


def _deny_to_http(decision: Deny, config: RateLimitConfig) -> HTTPException:
    headers = None
    if decision.retry_after_ms is not None:
        headers = {"Retry-After": str(math.ceil(decision.retry_after_ms / 1000))}

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    if decision.reason is DenyReason.LIMITER_UNAVAILABLE:
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HTTPException(
        status_code=status_code,
        detail=Error(
            error=decision.reason.value,
            message=deny_message(decision, config),
            retry_after_ms=decision.retry_after_ms,
        ).model_dump(),
        headers=headers,
    )


@router.get(
    "/categories",
    response_model=CategoriesResponse,
    operation_id="listNotificationCategories",
    summary="List the notification categories a QR page can offer",
)
async def list_categories() -> CategoriesResponse:
    return CategoriesResponse(
        categories=[
            NotificationCategoryInfo(id=c.id, key=c.key, severity=c.severity.value)
            for c in CATEGORIES.values()
        ]
    )


@router.post(
    "/send",
    response_model=SendNotificationResponse,
    operation_id="sendNotification",
    summary="Notify the owner of a QR-tagged vehicle",
)
@limiter.limit(DEFAULT)
async def send_notification(
    request: Request,
    body: SendNotificationRequest,
    gate: Gate,
    dispatcher: NotificationDispatcher,
) -> SendNotificationResponse:
    fingerprint = get_client_fingerprint(request)
    key = RateLimitKey(fingerprint=fingerprint, target_id=body.qr_token)
    categories = classify(body.notification_ids)

    decision = await gate.evaluate(key, body.notification_ids)

    if isinstance(decision, Deny):
        if decision.reason is DenyReason.LIMITER_UNAVAILABLE:
            logger.error(
                "Rate limiter unavailable, denying notification for %s", body.qr_token
            )
        else:
            logger.info(
                "Notification denied for %s from %s: %s",
                body.qr_token,
                fingerprint,
                decision.reason.value,
            )
        raise _deny_to_http(decision, gate.config)

    try:
        await dispatcher.dispatch(body.qr_token, categories)
    except Exception:
        # The admission stays counted; delivery retries are the transport's job.
        logger.exception("Dispatch failed for %s", body.qr_token)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=Error(
                error="dispatch_failed",
                message="Failed to send some notifications",
            ).model_dump(),
        ) from None

    logger.info(
        "Dispatched %d notifications for %s (window: %d normal, %d critical)",
        len(categories),
        body.qr_token,
        decision.normal_sent,
        decision.critical_sent,
    )
    return SendNotificationResponse(
        success=True,
        message="Notifications sent successfully",
        normal_sent=decision.normal_sent,
        critical_sent=decision.critical_sent,
        dispatched=[c.key for c in categories],
    )
