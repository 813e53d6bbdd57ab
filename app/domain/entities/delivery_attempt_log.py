"""Domain entity representing an audit entry for a delivery attempt."""

from dataclasses import dataclass
from datetime import datetime

from .notification import NotificationChannel, NotificationStatus


@dataclass(frozen=True)
class DeliveryAttemptLog:
    """Immutable record of one attempt (or suppression) of a notification."""

    id: int | None
    notification_id: int
    user_id: int
    channel: NotificationChannel
    status: NotificationStatus
    error_message: str | None
    attempt_number: int
    duration_ms: int
    created_at: datetime | None


__all__ = ["DeliveryAttemptLog"]
