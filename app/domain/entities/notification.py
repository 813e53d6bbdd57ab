"""Domain entity representing a notification addressed to a user."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any


class NotificationChannel(str, Enum):
    """Delivery mechanisms supported by the dispatcher."""

    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"
    IN_APP = "IN_APP"

    @property
    def supports_subject(self) -> bool:
        """Return ``True`` when messages on this channel carry a subject line."""

        return self in (NotificationChannel.EMAIL, NotificationChannel.PUSH)


class NotificationType(str, Enum):
    """Business category of a notification.

    Mandatory types cannot be opted out of. They may still be postponed by
    quiet hours or rate limits.
    """

    TRANSACTIONAL = "TRANSACTIONAL"
    PROMOTIONAL = "PROMOTIONAL"
    ALERT = "ALERT"
    REMINDER = "REMINDER"
    SYSTEM = "SYSTEM"

    @property
    def mandatory(self) -> bool:
        return self in _MANDATORY_TYPES


_MANDATORY_TYPES = frozenset(
    {NotificationType.TRANSACTIONAL, NotificationType.ALERT, NotificationType.SYSTEM}
)


class NotificationPriority(str, Enum):
    """Urgency of a notification and the delay it can tolerate."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def max_delay(self) -> timedelta:
        """Maximum acceptable delay between submission and delivery."""

        return _PRIORITY_MAX_DELAY[self]


_PRIORITY_MAX_DELAY = {
    NotificationPriority.LOW: timedelta(hours=24),
    NotificationPriority.MEDIUM: timedelta(hours=1),
    NotificationPriority.HIGH: timedelta(minutes=15),
    NotificationPriority.CRITICAL: timedelta(minutes=1),
}


class NotificationStatus(str, Enum):
    """Lifecycle states owned by the delivery orchestrator."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
    RETRY = "RETRY"
    CANCELLED = "CANCELLED"


CANCELLABLE_STATUSES = frozenset({NotificationStatus.PENDING, NotificationStatus.RETRY})
DISPATCHABLE_STATUSES = frozenset({NotificationStatus.PENDING, NotificationStatus.RETRY})


@dataclass
class Notification:
    """Message addressed to a single user through a single channel."""

    id: int | None
    user_id: int | None
    title: str
    message: str
    channel: NotificationChannel | None
    type: NotificationType = NotificationType.TRANSACTIONAL
    priority: NotificationPriority = NotificationPriority.MEDIUM
    status: NotificationStatus = NotificationStatus.PENDING
    template_id: str | None = None
    subject: str | None = None
    variables: dict[str, Any] = field(default_factory=dict)
    scheduled_at: datetime | None = None
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    retry_count: int = 0
    max_retries: int = 3
    error_message: str | None = None
    external_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def can_retry(self) -> bool:
        """Return ``True`` while the retry budget has not been spent."""

        return self.retry_count < self.max_retries

    @property
    def attempt_number(self) -> int:
        """Ordinal of the delivery attempt currently being made."""

        return self.retry_count + 1

    @property
    def delivery_subject(self) -> str | None:
        """Subject line sent to the provider.

        Template based notifications only carry the subject their template
        rendered. Ad hoc notifications use their title.
        """

        if self.template_id:
            return self.subject
        return self.title


__all__ = [
    "CANCELLABLE_STATUSES",
    "DISPATCHABLE_STATUSES",
    "Notification",
    "NotificationChannel",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationType",
]
