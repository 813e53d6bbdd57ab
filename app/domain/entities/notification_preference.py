"""Domain entity representing a user's delivery preference."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time

from .notification import NotificationChannel, NotificationType


@dataclass
class NotificationPreference:
    """Opt-in state, quiet hours and rate caps for a (user, type, channel) triple."""

    id: int | None
    user_id: int
    type: NotificationType
    channel: NotificationChannel
    enabled: bool
    quiet_hours_start: time | None = None
    quiet_hours_end: time | None = None
    max_per_hour: int | None = None
    max_per_day: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def has_quiet_hours(self) -> bool:
        """Return ``True`` when a non-empty quiet hours window is configured."""

        return (
            self.quiet_hours_start is not None
            and self.quiet_hours_end is not None
            and self.quiet_hours_start != self.quiet_hours_end
        )

    def in_quiet_hours(self, moment: time) -> bool:
        """Return ``True`` when ``moment`` falls inside the quiet hours window.

        A window whose start is later than its end wraps midnight, so 22:00-06:00
        blocks 23:30 and 05:30 but not 12:00.
        """

        if not self.has_quiet_hours():
            return False
        start = self.quiet_hours_start
        end = self.quiet_hours_end
        if start < end:
            return start <= moment < end
        return moment >= start or moment < end


__all__ = ["NotificationPreference"]
