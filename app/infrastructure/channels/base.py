"""Contract shared by every channel sender."""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.entities import (
    Notification,
    NotificationChannel,
    RenderedContent,
    SendResult,
    User,
)


class ChannelSender(ABC):
    """Deliver rendered notifications through a single provider.

    ``validate`` must not perform I/O. ``send`` performs the provider call and
    classifies failures: timeouts, 5xx and 429 responses are retryable while
    rejected recipients and other 4xx responses are not. Implementations may
    either return a failed :class:`SendResult` or raise
    :class:`~app.domain.errors.TransientProviderFailure` /
    :class:`~app.domain.errors.PermanentProviderFailure`.
    """

    channel: NotificationChannel
    confirms_delivery: bool = False

    def validate(self, notification: Notification, user: User) -> bool:
        """Return ``True`` when ``user`` has an address for this channel."""

        return bool(user.contact_for(self.channel))

    @abstractmethod
    def send(
        self, notification: Notification, user: User, content: RenderedContent
    ) -> SendResult:
        """Perform the provider call for ``notification``."""


def is_retryable_status(status_code: int | None) -> bool:
    """Classify an HTTP status returned by a provider."""

    if status_code is None:
        return True
    return status_code == 429 or status_code == 408 or status_code >= 500


__all__ = ["ChannelSender", "is_retryable_status"]
