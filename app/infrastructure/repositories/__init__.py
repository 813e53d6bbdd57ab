"""Repository implementations for infrastructure layer."""

from .delivery_attempt_log_repository import DeliveryAttemptLogRepository
from .notification_preference_repository import NotificationPreferenceRepository
from .notification_repository import NotificationRepository
from .notification_template_repository import NotificationTemplateRepository
from .scheduled_delivery_repository import ScheduledDeliveryRepository
from .user_repository import UserRepository

__all__ = [
    "DeliveryAttemptLogRepository",
    "NotificationPreferenceRepository",
    "NotificationRepository",
    "NotificationTemplateRepository",
    "ScheduledDeliveryRepository",
    "UserRepository",
]
