"""Email delivery through the SendGrid REST API."""

from __future__ import annotations

import json
import logging
from html import escape
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from app.domain.entities import (
    Notification,
    NotificationChannel,
    RenderedContent,
    SendResult,
    User,
)

from .base import ChannelSender, is_retryable_status

logger = logging.getLogger(__name__)


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages = [
                _format_error_item(item) for item in errors if isinstance(item, dict)
            ]
            messages = [message for message in messages if message]
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _format_error_item(item: dict[str, Any]) -> str | None:
    message = item.get("message")
    field = item.get("field")
    if not message:
        return None
    if field:
        return f"{message} (field: {field})"
    return str(message)


def _describe_failure(status_code: Any, body: Any) -> str:
    details = _extract_sendgrid_error_details(body)
    if status_code and details:
        return f"SendGrid respondió con estado {status_code}: {details}"
    if status_code:
        return f"SendGrid respondió con estado {status_code}"
    if details:
        return f"SendGrid rechazó el envío: {details}"
    return "SendGrid rechazó el envío"


def _render_html(body: str) -> str:
    paragraphs = [escape(part).replace("\n", "<br>") for part in body.split("\n\n")]
    return "".join(f"<p>{paragraph}</p>" for paragraph in paragraphs if paragraph)


class SendGridEmailSender(ChannelSender):
    """Send email notifications using the configured SendGrid credentials."""

    channel = NotificationChannel.EMAIL

    def __init__(
        self,
        api_key: str | None,
        sender: str | None,
        *,
        client: SendGridAPIClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._client = client
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return bool((self._api_key or self._client) and self._sender)

    def validate(self, notification: Notification, user: User) -> bool:
        return bool(user.email and "@" in user.email)

    def send(
        self, notification: Notification, user: User, content: RenderedContent
    ) -> SendResult:
        if not self.configured:
            logger.info("SendGrid configuration incomplete; skipping email delivery")
            return SendResult.failed(
                "La configuración de SendGrid está incompleta", retryable=False
            )

        message = Mail(
            from_email=self._sender,
            to_emails=user.email,
            subject=content.subject or notification.title,
            plain_text_content=content.body,
            html_content=_render_html(content.body),
        )

        try:
            response = self._get_client().send(message)
        except Exception as exc:
            status_code = getattr(exc, "status_code", None)
            error = _describe_failure(status_code, getattr(exc, "body", None))
            if status_code is None:
                logger.exception("Error sending email via SendGrid: %s", exc)
            else:
                logger.error("SendGrid API request failed: %s", error)
            return SendResult.failed(error, retryable=is_retryable_status(status_code))

        status_code = getattr(response, "status_code", None)
        if not isinstance(status_code, int) or not 200 <= status_code < 300:
            error = _describe_failure(status_code, getattr(response, "body", None))
            logger.error("SendGrid API responded with an error: %s", error)
            return SendResult.failed(
                error,
                retryable=is_retryable_status(status_code if isinstance(status_code, int) else None),
            )

        headers = getattr(response, "headers", None) or {}
        external_id = headers.get("X-Message-Id") if hasattr(headers, "get") else None
        return SendResult.delivered(external_id=external_id)

    def _get_client(self) -> SendGridAPIClient:
        if self._client is None:
            self._client = SendGridAPIClient(self._api_key)
            # python_http_client applies this to every request it builds.
            self._client.client.timeout = self._timeout
        return self._client


__all__ = ["SendGridEmailSender"]
