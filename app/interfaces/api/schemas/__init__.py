from .notification import (
    DeliveryAttemptRead,
    DeliveryReceiptRequest,
    DispatchResultRead,
    NotificationActionRead,
    NotificationBatchRequest,
    NotificationCreatedRead,
    NotificationDispatchRequest,
    NotificationRead,
    NotificationScheduleRequest,
    NotificationStatsRead,
    NotificationStatusRead,
    NotificationTemplateRequest,
)
from .preference import PreferenceRead, PreferenceUpsert
from .template import TemplateCreate, TemplateRead, TemplateStatusUpdate
from .user import UserCreate, UserRead, UserUpdate

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
    "PreferenceRead",
    "PreferenceUpsert",
    "TemplateCreate",
    "TemplateRead",
    "TemplateStatusUpdate",
    "UserCreate",
    "UserRead",
    "UserUpdate",
]
