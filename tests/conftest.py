"""Shared fixtures for the notification service tests."""

from __future__ import annotations

import os
import tempfile
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

os.environ["DATABASE_URL"] = f"sqlite:///{Path(tempfile.gettempdir()) / 'notifications-test.db'}"
os.environ["APP_TIMEZONE"] = "UTC"
os.environ.setdefault("WORKER_ENABLED", "false")

from app.application.use_cases.notifications import DeliveryOrchestrator  # noqa: E402
from app.config import Settings  # noqa: E402
from app.domain.entities import (  # noqa: E402
    Notification,
    NotificationChannel,
    NotificationPreference,
    NotificationType,
    SendResult,
    User,
)
from app.infrastructure.channels import ChannelSender, SenderRegistry  # noqa: E402
from app.infrastructure.database import (  # noqa: E402
    build_engine,
    build_session_factory,
    initialize_database,
)
from app.infrastructure.repositories import (  # noqa: E402
    NotificationPreferenceRepository,
    NotificationRepository,
    UserRepository,
)


START = datetime(2024, 5, 6, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value


class FakeSender(ChannelSender):
    """Sender returning scripted outcomes; exceptions in the script are raised."""

    def __init__(
        self,
        channel: NotificationChannel = NotificationChannel.EMAIL,
        outcomes=None,
        *,
        default=None,
        confirms_delivery: bool = False,
    ) -> None:
        self.channel = channel
        self.confirms_delivery = confirms_delivery
        self.outcomes = list(outcomes or [])
        self.default = default
        self.calls: list[tuple[int, object]] = []
        self._lock = threading.Lock()

    def send(self, notification, user, content):
        with self._lock:
            self.calls.append((notification.id, content))
            outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if outcome is None:
            return SendResult.delivered(external_id=f"ext-{notification.id}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class BlockingSender(FakeSender):
    """Sender that waits for ``release`` before answering."""

    def __init__(self, channel: NotificationChannel = NotificationChannel.EMAIL) -> None:
        super().__init__(channel)
        self.entered = threading.Event()
        self.release = threading.Event()

    def send(self, notification, user, content):
        self.entered.set()
        self.release.wait(timeout=5)
        return super().send(notification, user, content)


@pytest.fixture()
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'notifications.db'}")
    initialize_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        provider_timeout_seconds=2.0,
        dispatch_lock_timeout_seconds=5.0,
        batch_max_workers=3,
        worker_enabled=False,
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def email_sender() -> FakeSender:
    return FakeSender(NotificationChannel.EMAIL)


@pytest.fixture()
def sms_sender() -> FakeSender:
    return FakeSender(NotificationChannel.SMS)


@pytest.fixture()
def registry(email_sender, sms_sender) -> SenderRegistry:
    return SenderRegistry([email_sender, sms_sender])


@pytest.fixture()
def orchestrator(session_factory, registry, settings, clock) -> DeliveryOrchestrator:
    return DeliveryOrchestrator(session_factory, registry, settings=settings, clock=clock)


@pytest.fixture()
def make_user(session):
    def factory(**overrides) -> User:
        values = {
            "id": None,
            "name": "Ada",
            "email": "ada@example.com",
            "phone": "+15551234567",
            "push_token": None,
            "locale": "en",
            "timezone": None,
            "is_active": True,
            "deleted": False,
            "created_at": None,
            "updated_at": None,
        }
        values.update(overrides)
        return UserRepository(session).create(User(**values))

    return factory


@pytest.fixture()
def set_preference(session):
    def factory(user: User, notification_type, channel, **overrides) -> NotificationPreference:
        values = {"enabled": True}
        values.update(overrides)
        return NotificationPreferenceRepository(session).upsert(
            NotificationPreference(
                id=None,
                user_id=user.id,
                type=NotificationType(notification_type),
                channel=NotificationChannel(channel),
                **values,
            )
        )

    return factory


@pytest.fixture()
def store_notification(session, clock):
    def factory(user: User, **overrides) -> Notification:
        values = {
            "id": None,
            "user_id": user.id,
            "title": "Pedido",
            "message": "Order #123 confirmed",
            "channel": NotificationChannel.EMAIL,
            "created_at": clock(),
        }
        values.update(overrides)
        return NotificationRepository(session).create(Notification(**values))

    return factory
