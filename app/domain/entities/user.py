"""Domain entity representing a notification recipient."""

from dataclasses import dataclass
from datetime import datetime

from .notification import NotificationChannel


@dataclass
class User:
    """Contact details and delivery settings of a recipient."""

    id: int | None
    name: str
    email: str | None
    phone: str | None
    push_token: str | None
    locale: str
    timezone: str | None
    is_active: bool
    deleted: bool
    created_at: datetime | None
    updated_at: datetime | None

    def can_receive_notifications(self) -> bool:
        """Return ``True`` when the user is active and has not been removed."""

        return self.is_active and not self.deleted

    def contact_for(self, channel: NotificationChannel) -> str | None:
        """Return the address used to reach the user through ``channel``."""

        if channel is NotificationChannel.EMAIL:
            return self.email
        if channel is NotificationChannel.SMS:
            return self.phone
        if channel is NotificationChannel.PUSH:
            return self.push_token
        if channel is NotificationChannel.IN_APP:
            return str(self.id) if self.id is not None else None
        return None


__all__ = ["User"]
