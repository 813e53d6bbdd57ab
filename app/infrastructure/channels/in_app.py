"""In-app delivery over the websocket connection manager."""

from __future__ import annotations

import logging

from app.domain.entities import (
    Notification,
    NotificationChannel,
    RenderedContent,
    SendResult,
    User,
)
from app.infrastructure.notifications import NotificationPublisher, notification_publisher

from .base import ChannelSender

logger = logging.getLogger(__name__)


class InAppSender(ChannelSender):
    """Store-and-forward delivery to the user's in-app inbox.

    The notification record is the inbox entry, so a send is complete once it
    is handed to the publisher. Connected clients receive it immediately and
    the rest read it on their next fetch.
    """

    channel = NotificationChannel.IN_APP
    confirms_delivery = True

    def __init__(self, publisher: NotificationPublisher | None = None) -> None:
        self._publisher = publisher or notification_publisher

    def validate(self, notification: Notification, user: User) -> bool:
        return user.id is not None

    def send(
        self, notification: Notification, user: User, content: RenderedContent
    ) -> SendResult:
        connections = self._publisher.dispatch(notification, content)
        logger.debug(
            "In-app notification %s handed to %s live connection(s)",
            notification.id,
            connections,
        )
        return SendResult.delivered(external_id=f"in-app-{notification.id}")


__all__ = ["InAppSender"]
