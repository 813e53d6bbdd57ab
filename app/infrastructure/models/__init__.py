"""ORM models used by the application infrastructure."""

from .delivery_attempt_log import DeliveryAttemptLogModel
from .notification import NotificationModel
from .notification_preference import NotificationPreferenceModel
from .notification_template import NotificationTemplateModel
from .scheduled_delivery import ScheduledDeliveryModel
from .user import UserModel

__all__ = [
    "DeliveryAttemptLogModel",
    "NotificationModel",
    "NotificationPreferenceModel",
    "NotificationTemplateModel",
    "ScheduledDeliveryModel",
    "UserModel",
]
