"""Push delivery through an FCM-style HTTP gateway."""

from __future__ import annotations

import logging

import httpx

from app.domain.entities import (
    Notification,
    NotificationChannel,
    RenderedContent,
    SendResult,
    User,
)
from app.domain.errors import TransientProviderFailure

from .base import ChannelSender, is_retryable_status

logger = logging.getLogger(__name__)


class HttpPushSender(ChannelSender):
    """POST push payloads to ``gateway_url`` authenticated with a server key."""

    channel = NotificationChannel.PUSH

    def __init__(
        self,
        gateway_url: str | None,
        server_key: str | None,
        *,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._gateway_url = gateway_url
        self._server_key = server_key
        self._timeout = timeout
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._gateway_url)

    def send(
        self, notification: Notification, user: User, content: RenderedContent
    ) -> SendResult:
        if not self.configured:
            logger.info("Push gateway not configured; skipping push delivery")
            return SendResult.failed(
                "La pasarela de notificaciones push no está configurada", retryable=False
            )

        payload = {
            "to": user.push_token,
            "notification": {
                "title": content.subject or notification.title,
                "body": content.body,
            },
            "data": {
                "notification_id": notification.id,
                "type": notification.type.value,
                "priority": notification.priority.value,
            },
        }
        headers = {"Content-Type": "application/json"}
        if self._server_key:
            headers["Authorization"] = f"key={self._server_key}"

        try:
            response = self._get_client().post(
                self._gateway_url, json=payload, headers=headers, timeout=self._timeout
            )
        except httpx.TimeoutException as exc:
            raise TransientProviderFailure(f"La pasarela push no respondió a tiempo: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.error("Push gateway request failed: %s", exc)
            return SendResult.failed(f"Error de red con la pasarela push: {exc}", retryable=True)

        if response.status_code >= 300:
            logger.error(
                "Push gateway responded with status %s: %s", response.status_code, response.text
            )
            return SendResult.failed(
                f"La pasarela push respondió con estado {response.status_code}",
                retryable=is_retryable_status(response.status_code),
            )

        return SendResult.delivered(external_id=_extract_message_id(response))

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client()
        return self._client


def _extract_message_id(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    results = data.get("results")
    if isinstance(results, list) and results and isinstance(results[0], dict):
        message_id = results[0].get("message_id")
        if message_id:
            return str(message_id)
    message_id = data.get("message_id") or data.get("name")
    return str(message_id) if message_id else None


__all__ = ["HttpPushSender"]
