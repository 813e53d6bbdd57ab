"""Use case for activating or deactivating a template version."""

from sqlalchemy.orm import Session

from app.domain.entities import NotificationTemplate
from app.infrastructure.repositories import NotificationTemplateRepository


def update_template_status(session: Session, entry_id: int, *, is_active: bool) -> NotificationTemplate:
    """Toggle a template version. Inactive versions are never rendered."""

    template = NotificationTemplateRepository(session).set_active(entry_id, is_active)
    if template is None:
        raise LookupError("Plantilla no encontrada")
    return template
