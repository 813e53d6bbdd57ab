"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.domain.entities import (
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from app.infrastructure.models import NotificationModel
from app.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)

_DATETIME_FIELDS = frozenset({"scheduled_at", "sent_at", "delivered_at"})


class NotificationRepository:
    """Provide CRUD and guarded state transitions for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        if model is None:
            return None
        self.session.refresh(model)
        return self._to_entity(model)

    def get_status(self, notification_id: int) -> NotificationStatus | None:
        value = (
            self.session.query(NotificationModel.status)
            .filter(NotificationModel.id == notification_id)
            .scalar()
        )
        return NotificationStatus(value) if value is not None else None

    def list_for_user(
        self,
        user_id: int,
        *,
        limit: int | None = 50,
    ) -> Sequence[Notification]:
        query = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        model.created_at = ensure_app_naive_datetime(
            notification.created_at or now_in_app_timezone()
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def compare_and_set(
        self,
        notification_id: int,
        *,
        expected: Iterable[NotificationStatus],
        status: NotificationStatus,
        **changes: Any,
    ) -> bool:
        """Move a notification to ``status`` only if it is still in ``expected``.

        The check and the write happen in a single ``UPDATE`` statement, so two
        writers racing on the same notification cannot both succeed.
        """

        values: dict[Any, Any] = {
            NotificationModel.status: status.value,
            NotificationModel.updated_at: ensure_app_naive_datetime(now_in_app_timezone()),
        }
        for name, value in changes.items():
            column = getattr(NotificationModel, name)
            if name in _DATETIME_FIELDS:
                value = ensure_app_naive_datetime(value)
            values[column] = value

        updated = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification_id)
            .filter(NotificationModel.status.in_([state.value for state in expected]))
            .update(values, synchronize_session=False)
        )
        self.session.commit()
        return updated == 1

    def count_by_status(
        self, *, start: datetime | None = None, end: datetime | None = None
    ) -> dict[NotificationStatus, int]:
        """Return the number of notifications per status created in ``[start, end)``."""

        query = self.session.query(NotificationModel.status, func.count(NotificationModel.id))
        if start is not None:
            query = query.filter(NotificationModel.created_at >= ensure_app_naive_datetime(start))
        if end is not None:
            query = query.filter(NotificationModel.created_at < ensure_app_naive_datetime(end))
        rows = query.group_by(NotificationModel.status).all()
        return {NotificationStatus(status): count for status, count in rows}

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        model.user_id = notification.user_id
        model.title = notification.title
        model.message = notification.message
        model.template_id = notification.template_id
        model.subject = notification.subject
        model.variables = dict(notification.variables or {})
        model.channel = NotificationChannel(notification.channel).value
        model.type = NotificationType(notification.type).value
        model.priority = NotificationPriority(notification.priority).value
        model.status = NotificationStatus(notification.status).value
        model.scheduled_at = ensure_app_naive_datetime(notification.scheduled_at)
        model.sent_at = ensure_app_naive_datetime(notification.sent_at)
        model.delivered_at = ensure_app_naive_datetime(notification.delivered_at)
        model.retry_count = notification.retry_count
        model.max_retries = notification.max_retries
        model.error_message = notification.error_message
        model.external_id = notification.external_id

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            title=model.title,
            message=model.message,
            channel=NotificationChannel(model.channel),
            type=NotificationType(model.type),
            priority=NotificationPriority(model.priority),
            status=NotificationStatus(model.status),
            template_id=model.template_id,
            subject=model.subject,
            variables=dict(model.variables or {}),
            scheduled_at=ensure_app_timezone(model.scheduled_at),
            sent_at=ensure_app_timezone(model.sent_at),
            delivered_at=ensure_app_timezone(model.delivered_at),
            retry_count=model.retry_count or 0,
            max_retries=model.max_retries if model.max_retries is not None else 0,
            error_message=model.error_message,
            external_id=model.external_id,
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["NotificationRepository"]
