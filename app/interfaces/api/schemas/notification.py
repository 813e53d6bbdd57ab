"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.domain.entities import (
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)


class NotificationDispatchRequest(BaseModel):
    """Notification submitted by an event producer."""

    user_id: int = Field(..., ge=1)
    channel: NotificationChannel
    message: str = Field(..., min_length=1)
    title: str = Field(default="", max_length=255)
    type: NotificationType = NotificationType.TRANSACTIONAL
    priority: NotificationPriority = NotificationPriority.MEDIUM
    max_retries: int | None = Field(default=None, ge=0, le=20)
    scheduled_at: datetime | None = None

    model_config = ConfigDict(extra="forbid")


class NotificationScheduleRequest(NotificationDispatchRequest):
    """Notification that must not be delivered before ``scheduled_at``."""

    scheduled_at: datetime


class NotificationBatchRequest(BaseModel):
    """Same message fanned out to several users."""

    user_ids: list[int] = Field(..., min_length=1, max_length=1000)
    channel: NotificationChannel
    message: str = Field(..., min_length=1)
    title: str = Field(default="", max_length=255)
    type: NotificationType = NotificationType.TRANSACTIONAL
    priority: NotificationPriority = NotificationPriority.MEDIUM


class NotificationTemplateRequest(BaseModel):
    """Request to render a stored template into a pending notification."""

    user_id: int = Field(..., ge=1)
    template_id: str = Field(..., min_length=1, max_length=100)
    channel: NotificationChannel
    variables: dict[str, Any] = Field(default_factory=dict)
    type: NotificationType | None = None
    priority: NotificationPriority | None = None


class DeliveryReceiptRequest(BaseModel):
    """Provider callback confirming that a notification reached the user."""

    external_id: str | None = Field(default=None, max_length=255)


class DispatchResultRead(BaseModel):
    """Immediate outcome of a dispatch request."""

    notification_id: int | None
    status: NotificationStatus | None
    scheduled_for: datetime | None = None
    error: str | None = None
    error_code: str | None = None
    retryable: bool = False

    model_config = ConfigDict(from_attributes=True)


class NotificationCreatedRead(BaseModel):
    notification_id: int


class NotificationStatusRead(BaseModel):
    notification_id: int
    status: NotificationStatus


class NotificationActionRead(BaseModel):
    """Result of a cancel or retry request."""

    notification_id: int
    success: bool
    status: NotificationStatus


class NotificationRead(BaseModel):
    """Representation of a stored notification."""

    id: int
    user_id: int
    title: str
    message: str
    channel: NotificationChannel
    type: NotificationType
    priority: NotificationPriority
    status: NotificationStatus
    template_id: str | None = None
    subject: str | None = None
    variables: dict[str, Any] = Field(default_factory=dict)
    scheduled_at: datetime | None = None
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    retry_count: int
    max_retries: int
    error_message: str | None = None
    external_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class DeliveryAttemptRead(BaseModel):
    """Audit entry of a delivery attempt or suppression."""

    id: int
    notification_id: int
    channel: NotificationChannel
    status: NotificationStatus
    error_message: str | None = None
    attempt_number: int
    duration_ms: int
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class NotificationStatsRead(BaseModel):
    total: int
    sent: int
    delivered: int
    failed: int
    pending: int
    cancelled: int

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "DeliveryAttemptRead",
    "DeliveryReceiptRequest",
    "DispatchResultRead",
    "NotificationActionRead",
    "NotificationBatchRequest",
    "NotificationCreatedRead",
    "NotificationDispatchRequest",
    "NotificationRead",
    "NotificationScheduleRequest",
    "NotificationStatsRead",
    "NotificationStatusRead",
    "NotificationTemplateRequest",
]
