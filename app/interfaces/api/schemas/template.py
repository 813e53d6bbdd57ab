"""Schemas for notification template endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.domain.entities import NotificationChannel


class TemplateCreate(BaseModel):
    """Payload that publishes a new version of a template."""

    template_id: str = Field(..., min_length=1, max_length=100)
    channel: NotificationChannel
    language: str = Field(default="en", min_length=2, max_length=10)
    subject: str | None = Field(default=None, max_length=255)
    body: str = Field(..., min_length=1)
    is_active: bool = True


class TemplateStatusUpdate(BaseModel):
    is_active: bool


class TemplateRead(BaseModel):
    id: int
    template_id: str
    channel: NotificationChannel
    language: str
    subject: str | None
    body: str
    version: int
    is_active: bool
    created_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


__all__ = ["TemplateCreate", "TemplateRead", "TemplateStatusUpdate"]
