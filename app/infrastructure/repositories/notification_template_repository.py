"""Persistence layer for notification templates."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.domain.entities import NotificationChannel, NotificationTemplate
from app.infrastructure.models import NotificationTemplateModel
from app.utils import ensure_app_naive_datetime, ensure_app_timezone, now_in_app_timezone


class NotificationTemplateRepository:
    """Provide versioned storage for :class:`NotificationTemplate` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, entry_id: int) -> NotificationTemplate | None:
        model = self.session.get(NotificationTemplateModel, entry_id)
        return self._to_entity(model) if model else None

    def list(
        self,
        *,
        template_id: str | None = None,
        channel: NotificationChannel | None = None,
        active_only: bool = False,
    ) -> Sequence[NotificationTemplate]:
        query = self.session.query(NotificationTemplateModel)
        if template_id is not None:
            query = query.filter(NotificationTemplateModel.template_id == template_id)
        if channel is not None:
            query = query.filter(
                NotificationTemplateModel.channel == NotificationChannel(channel).value
            )
        if active_only:
            query = query.filter(NotificationTemplateModel.is_active.is_(True))
        query = query.order_by(
            NotificationTemplateModel.template_id,
            NotificationTemplateModel.channel,
            NotificationTemplateModel.language,
            NotificationTemplateModel.version.desc(),
        )
        return [self._to_entity(model) for model in query.all()]

    def find_active(
        self,
        template_id: str,
        channel: NotificationChannel,
        *,
        language: str | None = None,
    ) -> NotificationTemplate | None:
        """Return the newest active version for ``(template_id, channel)``.

        When ``language`` is given only that language is considered.
        """

        query = (
            self.session.query(NotificationTemplateModel)
            .filter(NotificationTemplateModel.template_id == template_id)
            .filter(NotificationTemplateModel.channel == NotificationChannel(channel).value)
            .filter(NotificationTemplateModel.is_active.is_(True))
        )
        if language is not None:
            query = query.filter(func.lower(NotificationTemplateModel.language) == language.lower())
        model = query.order_by(
            NotificationTemplateModel.version.desc(), NotificationTemplateModel.id.desc()
        ).first()
        return self._to_entity(model) if model else None

    def next_version(self, template_id: str, channel: NotificationChannel, language: str) -> int:
        current = (
            self.session.query(func.max(NotificationTemplateModel.version))
            .filter(NotificationTemplateModel.template_id == template_id)
            .filter(NotificationTemplateModel.channel == NotificationChannel(channel).value)
            .filter(NotificationTemplateModel.language == language)
            .scalar()
        )
        return (current or 0) + 1

    def create(self, template: NotificationTemplate) -> NotificationTemplate:
        model = NotificationTemplateModel(
            template_id=template.template_id,
            channel=NotificationChannel(template.channel).value,
            language=template.language,
            subject=template.subject,
            body=template.body,
            version=template.version,
            is_active=template.is_active,
            created_at=ensure_app_naive_datetime(template.created_at or now_in_app_timezone()),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def set_active(self, entry_id: int, is_active: bool) -> NotificationTemplate | None:
        model = self.session.get(NotificationTemplateModel, entry_id)
        if model is None:
            return None
        model.is_active = is_active
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: NotificationTemplateModel) -> NotificationTemplate:
        return NotificationTemplate(
            id=model.id,
            template_id=model.template_id,
            channel=NotificationChannel(model.channel),
            language=model.language,
            subject=model.subject,
            body=model.body,
            version=model.version,
            is_active=bool(model.is_active),
            created_at=ensure_app_timezone(model.created_at),
        )


__all__ = ["NotificationTemplateRepository"]
