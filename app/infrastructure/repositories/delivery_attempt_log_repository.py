"""Append-only persistence layer for delivery attempt records."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from app.domain.entities import DeliveryAttemptLog, NotificationChannel, NotificationStatus
from app.infrastructure.models import DeliveryAttemptLogModel
from app.utils import ensure_app_naive_datetime, ensure_app_timezone, now_in_app_timezone

_SUCCESS_STATUSES = (NotificationStatus.SENT.value, NotificationStatus.DELIVERED.value)


class DeliveryAttemptLogRepository:
    """Write and query :class:`DeliveryAttemptLog` entries.

    Entries are never updated or deleted once written. Each append is a single
    ``INSERT``, so concurrent writers cannot lose each other's rows.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, entry: DeliveryAttemptLog) -> DeliveryAttemptLog:
        model = DeliveryAttemptLogModel(
            notification_id=entry.notification_id,
            user_id=entry.user_id,
            channel=NotificationChannel(entry.channel).value,
            status=NotificationStatus(entry.status).value,
            error_message=entry.error_message,
            attempt_number=entry.attempt_number,
            duration_ms=entry.duration_ms,
            created_at=ensure_app_naive_datetime(entry.created_at or now_in_app_timezone()),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_for_notification(self, notification_id: int) -> list[DeliveryAttemptLog]:
        query = (
            self.session.query(DeliveryAttemptLogModel)
            .filter(DeliveryAttemptLogModel.notification_id == notification_id)
            .order_by(DeliveryAttemptLogModel.id)
        )
        return [self._to_entity(model) for model in query.all()]

    def successful_deliveries_since(
        self, user_id: int, channel: NotificationChannel, since: datetime
    ) -> list[datetime]:
        """Return timestamps of successful sends to ``(user_id, channel)`` after ``since``."""

        rows = (
            self.session.query(DeliveryAttemptLogModel.created_at)
            .filter(DeliveryAttemptLogModel.user_id == user_id)
            .filter(DeliveryAttemptLogModel.channel == NotificationChannel(channel).value)
            .filter(DeliveryAttemptLogModel.status.in_(_SUCCESS_STATUSES))
            .filter(DeliveryAttemptLogModel.created_at > ensure_app_naive_datetime(since))
            .order_by(DeliveryAttemptLogModel.created_at)
            .all()
        )
        return [ensure_app_timezone(created_at) for (created_at,) in rows]

    @staticmethod
    def _to_entity(model: DeliveryAttemptLogModel) -> DeliveryAttemptLog:
        return DeliveryAttemptLog(
            id=model.id,
            notification_id=model.notification_id,
            user_id=model.user_id,
            channel=NotificationChannel(model.channel),
            status=NotificationStatus(model.status),
            error_message=model.error_message,
            attempt_number=model.attempt_number,
            duration_ms=model.duration_ms or 0,
            created_at=ensure_app_timezone(model.created_at),
        )


__all__ = ["DeliveryAttemptLogRepository"]
