"""Use case for listing templates."""

from collections.abc import Sequence

from sqlalchemy.orm import Session

from app.domain.entities import NotificationChannel, NotificationTemplate
from app.infrastructure.repositories import NotificationTemplateRepository


def list_templates(
    session: Session,
    *,
    template_id: str | None = None,
    channel: NotificationChannel | None = None,
    active_only: bool = False,
) -> Sequence[NotificationTemplate]:
    return NotificationTemplateRepository(session).list(
        template_id=template_id, channel=channel, active_only=active_only
    )
