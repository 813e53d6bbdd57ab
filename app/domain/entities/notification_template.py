"""Domain entity representing a notification template."""

from dataclasses import dataclass
from datetime import datetime

from .notification import NotificationChannel


@dataclass
class NotificationTemplate:
    """Versioned content with ``{{placeholder}}`` tokens for one channel and language."""

    id: int | None
    template_id: str
    channel: NotificationChannel
    language: str
    subject: str | None
    body: str
    version: int
    is_active: bool
    created_at: datetime | None = None


@dataclass(frozen=True)
class RenderedContent:
    """Result of rendering a template with a set of variables."""

    subject: str | None
    body: str
    content: str


__all__ = ["NotificationTemplate", "RenderedContent"]
