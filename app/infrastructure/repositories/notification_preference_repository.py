"""Persistence layer for notification preferences."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Session

from app.domain.entities import NotificationChannel, NotificationPreference, NotificationType
from app.infrastructure.models import NotificationPreferenceModel
from app.utils import ensure_app_naive_datetime, ensure_app_timezone, now_in_app_timezone


class NotificationPreferenceRepository:
    """Provide lookups and upserts for :class:`NotificationPreference` records."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def find(
        self,
        user_id: int,
        notification_type: NotificationType,
        channel: NotificationChannel,
    ) -> NotificationPreference | None:
        model = self._find_model(user_id, notification_type, channel)
        return self._to_entity(model) if model else None

    def list_for_user(self, user_id: int) -> Sequence[NotificationPreference]:
        query = (
            self.session.query(NotificationPreferenceModel)
            .filter(NotificationPreferenceModel.user_id == user_id)
            .order_by(NotificationPreferenceModel.type, NotificationPreferenceModel.channel)
        )
        return [self._to_entity(model) for model in query.all()]

    def upsert(self, preference: NotificationPreference) -> NotificationPreference:
        """Create or replace the preference for its (user, type, channel) triple."""

        model = self._find_model(preference.user_id, preference.type, preference.channel)
        now = ensure_app_naive_datetime(now_in_app_timezone())
        if model is None:
            model = NotificationPreferenceModel(created_at=now)
        else:
            model.updated_at = now
        self._apply_entity_to_model(model, preference)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def delete(
        self,
        user_id: int,
        notification_type: NotificationType,
        channel: NotificationChannel,
    ) -> bool:
        """Delete a preference.

        Returns ``True`` when a record was removed and ``False`` when it did
        not exist.
        """

        model = self._find_model(user_id, notification_type, channel)
        if model is None:
            return False
        self.session.delete(model)
        self.session.commit()
        return True

    def _find_model(
        self,
        user_id: int,
        notification_type: NotificationType,
        channel: NotificationChannel,
    ) -> NotificationPreferenceModel | None:
        return (
            self.session.query(NotificationPreferenceModel)
            .filter(NotificationPreferenceModel.user_id == user_id)
            .filter(NotificationPreferenceModel.type == NotificationType(notification_type).value)
            .filter(NotificationPreferenceModel.channel == NotificationChannel(channel).value)
            .first()
        )

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationPreferenceModel, preference: NotificationPreference
    ) -> None:
        model.user_id = preference.user_id
        model.type = NotificationType(preference.type).value
        model.channel = NotificationChannel(preference.channel).value
        model.enabled = preference.enabled
        model.quiet_hours_start = preference.quiet_hours_start
        model.quiet_hours_end = preference.quiet_hours_end
        model.max_per_hour = preference.max_per_hour
        model.max_per_day = preference.max_per_day

    @staticmethod
    def _to_entity(model: NotificationPreferenceModel) -> NotificationPreference:
        return NotificationPreference(
            id=model.id,
            user_id=model.user_id,
            type=NotificationType(model.type),
            channel=NotificationChannel(model.channel),
            enabled=bool(model.enabled),
            quiet_hours_start=model.quiet_hours_start,
            quiet_hours_end=model.quiet_hours_end,
            max_per_hour=model.max_per_hour,
            max_per_day=model.max_per_day,
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["NotificationPreferenceRepository"]
