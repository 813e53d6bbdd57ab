"""Utility helpers to push notifications to websocket subscribers."""

from __future__ import annotations

import asyncio
from typing import Any

from anyio import from_thread

from app.domain.entities import Notification, RenderedContent

from .manager import NotificationConnectionManager, notification_manager


class NotificationPublisher:
    """Serialize notifications and schedule their delivery."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    def dispatch(self, notification: Notification, content: RenderedContent | None = None) -> int:
        """Schedule ``notification`` for every connection of its user.

        Returns the number of connections the message was handed to.
        """

        user_id = notification.user_id
        if user_id is None:
            return 0
        connections = self._manager.connection_count(user_id)
        if not connections:
            return 0

        message = {"type": "notification", "data": serialize_notification(notification, content)}
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            target = self._manager.loop
            if target is not None and target.is_running():
                asyncio.run_coroutine_threadsafe(
                    self._manager.send_to_user(user_id, message), target
                )
            else:
                from_thread.run(self._manager.send_to_user, user_id, message)
        else:
            loop.create_task(self._manager.send_to_user(user_id, message))
        return connections


def serialize_notification(
    notification: Notification, content: RenderedContent | None = None
) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type.value,
        "priority": notification.priority.value,
        "title": (content.subject if content and content.subject else notification.title),
        "message": content.body if content else notification.message,
        "template_id": notification.template_id,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


notification_publisher = NotificationPublisher(notification_manager)


__all__ = [
    "NotificationPublisher",
    "notification_publisher",
    "serialize_notification",
]
