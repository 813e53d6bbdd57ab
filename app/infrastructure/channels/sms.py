"""SMS delivery through Twilio."""

from __future__ import annotations

import logging

from twilio.base.exceptions import TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from app.domain.entities import (
    Notification,
    NotificationChannel,
    RenderedContent,
    SendResult,
    User,
)

from .base import ChannelSender, is_retryable_status

logger = logging.getLogger(__name__)

SMS_MAX_LENGTH = 1600


class TwilioSmsSender(ChannelSender):
    """Send SMS notifications with the Twilio messages API."""

    channel = NotificationChannel.SMS

    def __init__(
        self,
        account_sid: str | None,
        auth_token: str | None,
        from_number: str | None,
        *,
        client: Client | None = None,
        timeout: float | None = None,
    ) -> None:
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._from_number = from_number
        self._client = client
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        has_credentials = bool(self._account_sid and self._auth_token) or self._client is not None
        return has_credentials and bool(self._from_number)

    def validate(self, notification: Notification, user: User) -> bool:
        phone = (user.phone or "").strip()
        return phone.startswith("+") and phone[1:].isdigit() and len(phone) >= 8

    def send(
        self, notification: Notification, user: User, content: RenderedContent
    ) -> SendResult:
        if not self.configured:
            logger.info("Twilio configuration incomplete; skipping SMS delivery")
            return SendResult.failed(
                "La configuración de Twilio está incompleta", retryable=False
            )

        body = content.content[:SMS_MAX_LENGTH]
        try:
            message = self._get_client().messages.create(
                to=user.phone, from_=self._from_number, body=body
            )
        except TwilioRestException as exc:
            logger.error(
                "Twilio API request failed with status %s (code %s): %s",
                exc.status,
                exc.code,
                exc.msg,
            )
            return SendResult.failed(
                f"Twilio respondió con estado {exc.status}: {exc.msg}",
                retryable=is_retryable_status(exc.status),
            )

        if getattr(message, "error_code", None):
            error = f"Twilio rechazó el mensaje ({message.error_code}): {message.error_message}"
            logger.error(error)
            return SendResult.failed(error, retryable=False)

        return SendResult.delivered(external_id=getattr(message, "sid", None))

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = Client(
                self._account_sid,
                self._auth_token,
                http_client=TwilioHttpClient(timeout=self._timeout),
            )
        return self._client


__all__ = ["SMS_MAX_LENGTH", "TwilioSmsSender"]
