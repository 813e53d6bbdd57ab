"""Unit tests for the provider-backed channel senders."""

from __future__ import annotations

import json
import types

import httpx
import pytest
from twilio.base.exceptions import TwilioRestException

from app.application.use_cases.notifications import compose_content
from app.config import Settings
from app.domain.entities import Notification, NotificationChannel, User
from app.domain.errors import TransientProviderFailure, UnsupportedChannel
from app.infrastructure.channels import (
    HttpPushSender,
    InAppSender,
    SenderRegistry,
    TwilioSmsSender,
    build_default_registry,
)
from app.infrastructure.channels import email as email_module
from app.infrastructure.channels.base import is_retryable_status
from app.infrastructure.notifications import NotificationConnectionManager, NotificationPublisher


def _user(**overrides) -> User:
    values = {
        "id": 5,
        "name": "Ada",
        "email": "ada@example.com",
        "phone": "+15551234567",
        "push_token": "device-token",
        "locale": "en",
        "timezone": None,
        "is_active": True,
        "deleted": False,
        "created_at": None,
        "updated_at": None,
    }
    values.update(overrides)
    return User(**values)


def _notification(channel: NotificationChannel) -> Notification:
    return Notification(
        id=11,
        user_id=5,
        title="Pedido confirmado",
        message="Order 123 confirmed",
        channel=channel,
    )


def _content(channel: NotificationChannel):
    return compose_content(channel, "Pedido confirmado", "Order 123 confirmed")


@pytest.mark.parametrize(
    "status_code,retryable",
    [(None, True), (408, True), (429, True), (500, True), (503, True), (400, False), (403, False), (404, False)],
)
def test_is_retryable_status(status_code, retryable):
    assert is_retryable_status(status_code) is retryable


def test_email_without_configuration_is_permanent_failure():
    sender = email_module.SendGridEmailSender(None, None)
    notification = _notification(NotificationChannel.EMAIL)

    result = sender.send(notification, _user(), _content(NotificationChannel.EMAIL))

    assert result.success is False
    assert result.retryable is False


def test_email_success_returns_message_id(monkeypatch: pytest.MonkeyPatch) -> None:
    sent = {}

    class SuccessfulClient:
        def __init__(self, api_key: str):
            self.api_key = api_key

        def send(self, message):
            sent["message"] = message.get()
            return types.SimpleNamespace(
                status_code=202, body=None, headers={"X-Message-Id": "sg-123"}
            )

    monkeypatch.setattr(email_module, "SendGridAPIClient", SuccessfulClient)
    sender = email_module.SendGridEmailSender("SG.fake", "sender@example.com")

    result = sender.send(
        _notification(NotificationChannel.EMAIL), _user(), _content(NotificationChannel.EMAIL)
    )

    assert result.success is True
    assert result.external_id == "sg-123"
    assert sent["message"]["subject"] == "Pedido confirmado"
    assert sent["message"]["personalizations"][0]["to"][0]["email"] == "ada@example.com"


def test_email_logs_forbidden_error(monkeypatch: pytest.MonkeyPatch, caplog):
    """Forbidden responses from SendGrid should surface meaningful log details."""

    class FakeForbiddenError(Exception):
        status_code = 403
        body = json.dumps(
            {
                "errors": [
                    {
                        "message": "The provided authorization grant is invalid.",
                        "help": "https://sendgrid.com/docs/API_Reference/Web_API_v3/How_To_Use_The_Web_API_v3/authentication.html",
                    }
                ]
            }
        ).encode()

    class FailingClient:
        def __init__(self, api_key: str):
            self.api_key = api_key

        def send(self, message):
            raise FakeForbiddenError()

    monkeypatch.setattr(email_module, "SendGridAPIClient", FailingClient)
    sender = email_module.SendGridEmailSender("SG.fake", "sender@example.com")

    with caplog.at_level("ERROR"):
        result = sender.send(
            _notification(NotificationChannel.EMAIL), _user(), _content(NotificationChannel.EMAIL)
        )

    assert result.success is False
    assert result.retryable is False
    assert "estado 403" in caplog.text
    assert "authorization grant is invalid" in caplog.text


def test_email_server_error_is_retryable():
    client = types.SimpleNamespace(
        send=lambda message: types.SimpleNamespace(status_code=503, body=b"", headers={})
    )
    sender = email_module.SendGridEmailSender(None, "sender@example.com", client=client)

    result = sender.send(
        _notification(NotificationChannel.EMAIL), _user(), _content(NotificationChannel.EMAIL)
    )

    assert result.success is False
    assert result.retryable is True


def test_email_validate_requires_address():
    sender = email_module.SendGridEmailSender("SG.fake", "sender@example.com")
    notification = _notification(NotificationChannel.EMAIL)

    assert sender.validate(notification, _user()) is True
    assert sender.validate(notification, _user(email=None)) is False


class _FakeMessages:
    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _twilio(outcome) -> tuple[TwilioSmsSender, _FakeMessages]:
    messages = _FakeMessages(outcome)
    client = types.SimpleNamespace(messages=messages)
    return TwilioSmsSender(None, None, "+15550000000", client=client), messages


def test_sms_sends_plain_body():
    sender, messages = _twilio(types.SimpleNamespace(sid="SM123", error_code=None))

    result = sender.send(_notification(NotificationChannel.SMS), _user(), _content(NotificationChannel.SMS))

    assert result.success is True
    assert result.external_id == "SM123"
    assert messages.calls == [
        {"to": "+15551234567", "from_": "+15550000000", "body": "Order 123 confirmed"}
    ]


@pytest.mark.parametrize("status,retryable", [(503, True), (429, True), (400, False)])
def test_sms_classifies_twilio_errors(status, retryable):
    error = TwilioRestException(status, "https://api.twilio.com/2010-04-01/Messages.json", msg="boom")
    sender, _ = _twilio(error)

    result = sender.send(_notification(NotificationChannel.SMS), _user(), _content(NotificationChannel.SMS))

    assert result.success is False
    assert result.retryable is retryable


@pytest.mark.parametrize("phone,valid", [("+15551234567", True), ("5551234567", False), (None, False), ("+1-555", False)])
def test_sms_validate_requires_e164_number(phone, valid):
    sender, _ = _twilio(None)

    assert sender.validate(_notification(NotificationChannel.SMS), _user(phone=phone)) is valid


def _push_sender(handler) -> HttpPushSender:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpPushSender("https://push.example.com/send", "server-key", timeout=1.0, client=client)


def test_push_posts_payload_and_reads_message_id():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["Authorization"]
        captured["payload"] = json.loads(request.content)
        return httpx.Response(200, json={"results": [{"message_id": "push-1"}]})

    sender = _push_sender(handler)

    result = sender.send(_notification(NotificationChannel.PUSH), _user(), _content(NotificationChannel.PUSH))

    assert result.success is True
    assert result.external_id == "push-1"
    assert captured["auth"] == "key=server-key"
    assert captured["payload"]["to"] == "device-token"
    assert captured["payload"]["notification"]["title"] == "Pedido confirmado"


@pytest.mark.parametrize("status_code,retryable", [(500, True), (404, False)])
def test_push_classifies_gateway_errors(status_code, retryable):
    sender = _push_sender(lambda request: httpx.Response(status_code, text="error"))

    result = sender.send(_notification(NotificationChannel.PUSH), _user(), _content(NotificationChannel.PUSH))

    assert result.success is False
    assert result.retryable is retryable


def test_push_timeout_raises_transient_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    sender = _push_sender(handler)

    with pytest.raises(TransientProviderFailure):
        sender.send(_notification(NotificationChannel.PUSH), _user(), _content(NotificationChannel.PUSH))


def test_push_validate_requires_token():
    sender = _push_sender(lambda request: httpx.Response(200))

    assert sender.validate(_notification(NotificationChannel.PUSH), _user(push_token=None)) is False


def test_in_app_send_is_confirmed_without_live_connections():
    publisher = NotificationPublisher(NotificationConnectionManager())
    sender = InAppSender(publisher)

    result = sender.send(
        _notification(NotificationChannel.IN_APP), _user(), _content(NotificationChannel.IN_APP)
    )

    assert sender.confirms_delivery is True
    assert result.success is True
    assert result.external_id == "in-app-11"


def test_registry_resolves_registered_channels_only():
    registry = SenderRegistry([InAppSender(NotificationPublisher(NotificationConnectionManager()))])

    assert registry.resolve("IN_APP").channel is NotificationChannel.IN_APP
    with pytest.raises(UnsupportedChannel):
        registry.resolve(NotificationChannel.SMS)
    with pytest.raises(UnsupportedChannel):
        registry.resolve("FAX")


def test_default_registry_covers_every_channel():
    registry = build_default_registry(Settings(_env_file=None))

    assert registry.channels == frozenset(NotificationChannel)


def test_provider_clients_use_the_provider_timeout():
    email = email_module.SendGridEmailSender("SG.key", "noreply@example.com", timeout=4.0)
    sms = TwilioSmsSender("AC123", "token", "+15550000000", timeout=4.0)

    assert email._get_client().client.timeout == 4.0
    assert sms._get_client().http_client.timeout == 4.0
