"""Schemas for delivery preference endpoints."""

from datetime import datetime, time

from pydantic import BaseModel, ConfigDict, Field

from app.domain.entities import NotificationChannel, NotificationType


class PreferenceUpsert(BaseModel):
    """Opt-in state, quiet hours and rate caps for one type and channel."""

    type: NotificationType
    channel: NotificationChannel
    enabled: bool = True
    quiet_hours_start: time | None = None
    quiet_hours_end: time | None = None
    max_per_hour: int | None = Field(default=None, ge=1)
    max_per_day: int | None = Field(default=None, ge=1)

    model_config = ConfigDict(extra="forbid")


class PreferenceRead(BaseModel):
    id: int
    user_id: int
    type: NotificationType
    channel: NotificationChannel
    enabled: bool
    quiet_hours_start: time | None
    quiet_hours_end: time | None
    max_per_hour: int | None
    max_per_day: int | None
    created_at: datetime | None
    updated_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


__all__ = ["PreferenceRead", "PreferenceUpsert"]
