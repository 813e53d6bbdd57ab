"""Lookup table from channel to sender."""

from __future__ import annotations

from collections.abc import Iterable

from app.config import Settings
from app.domain.entities import NotificationChannel
from app.domain.errors import UnsupportedChannel

from .base import ChannelSender
from .email import SendGridEmailSender
from .in_app import InAppSender
from .push import HttpPushSender
from .sms import TwilioSmsSender


class SenderRegistry:
    """Resolve the :class:`ChannelSender` responsible for a channel."""

    def __init__(self, senders: Iterable[ChannelSender] = ()) -> None:
        self._senders: dict[NotificationChannel, ChannelSender] = {}
        for sender in senders:
            self.register(sender)

    def register(self, sender: ChannelSender) -> None:
        self._senders[NotificationChannel(sender.channel)] = sender

    def resolve(self, channel: NotificationChannel | str | None) -> ChannelSender:
        try:
            key = NotificationChannel(channel)
        except ValueError as exc:
            raise UnsupportedChannel(channel) from exc
        sender = self._senders.get(key)
        if sender is None:
            raise UnsupportedChannel(key.value)
        return sender

    @property
    def channels(self) -> frozenset[NotificationChannel]:
        return frozenset(self._senders)


def build_default_registry(settings: Settings) -> SenderRegistry:
    """Return a registry wired with the provider-backed senders."""

    return SenderRegistry(
        [
            SendGridEmailSender(
                settings.sendgrid_api_key,
                settings.sendgrid_sender,
                timeout=settings.provider_timeout_seconds,
            ),
            TwilioSmsSender(
                settings.twilio_account_sid,
                settings.twilio_auth_token,
                settings.twilio_from_number,
                timeout=settings.provider_timeout_seconds,
            ),
            HttpPushSender(
                settings.push_gateway_url,
                settings.push_server_key,
                timeout=settings.provider_timeout_seconds,
            ),
            InAppSender(),
        ]
    )


__all__ = ["SenderRegistry", "build_default_registry"]
