"""Domain entities exposed by the application."""

from .delivery_attempt_log import DeliveryAttemptLog
from .dispatch import (
    DispatchResult,
    NotificationStats,
    PreferenceDecision,
    PreferenceOutcome,
    SendResult,
)
from .notification import (
    CANCELLABLE_STATUSES,
    DISPATCHABLE_STATUSES,
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from .notification_preference import NotificationPreference
from .notification_template import NotificationTemplate, RenderedContent
from .scheduled_delivery import (
    SCHEDULE_REASON_DEFERRED,
    SCHEDULE_REASON_RETRY,
    SCHEDULE_REASON_SCHEDULED,
    ScheduledDelivery,
)
from .user import User

__all__ = [
    "CANCELLABLE_STATUSES",
    "DISPATCHABLE_STATUSES",
    "DeliveryAttemptLog",
    "DispatchResult",
    "Notification",
    "NotificationChannel",
    "NotificationPreference",
    "NotificationPriority",
    "NotificationStats",
    "NotificationStatus",
    "NotificationTemplate",
    "NotificationType",
    "PreferenceDecision",
    "PreferenceOutcome",
    "RenderedContent",
    "SCHEDULE_REASON_DEFERRED",
    "SCHEDULE_REASON_RETRY",
    "SCHEDULE_REASON_SCHEDULED",
    "ScheduledDelivery",
    "SendResult",
    "User",
]
