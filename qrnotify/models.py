"""Pydantic models for the QR Notify API."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Deployment environment name")
    counter_store: str = Field(..., description="Counter store backend: memory or redis")
    timestamp: datetime = Field(..., description="Server time")


class SendNotificationRequest(BaseModel):
    """Notifications a passer-by wants to send about one QR-tagged vehicle."""
    qr_token: str = Field(..., min_length=1, max_length=128, description="Token printed in the QR code")
    notification_ids: List[int] = Field(..., min_length=1, max_length=32, description="Requested category ids")


class SendNotificationResponse(BaseModel):
    """Result of an admitted batch."""
    success: bool = Field(True, description="Whether the batch was admitted and dispatched")
    message: str = Field(..., description="Human-readable summary")
    normal_sent: int = Field(..., ge=0, description="Normal notifications used in the current window")
    critical_sent: int = Field(..., ge=0, description="Critical notifications used in the current window")
    dispatched: List[str] = Field(default_factory=list, description="Category keys handed to delivery")


class Error(BaseModel):
    """Error body returned inside ``detail``."""
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable message")
    retry_after_ms: Optional[int] = Field(None, description="Milliseconds until a retry can succeed")


class NotificationCategoryInfo(BaseModel):
    """One selectable notification category."""
    id: int = Field(..., description="Category id")
    key: str = Field(..., description="Stable category key")
    severity: str = Field(..., description="normal or critical")


class CategoriesResponse(BaseModel):
    """All selectable notification categories."""
    categories: List[NotificationCategoryInfo] = Field(..., description="Category table")
