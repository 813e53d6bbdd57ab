"""Use case for retrieving a template version."""

from sqlalchemy.orm import Session

from app.domain.entities import NotificationTemplate
from app.infrastructure.repositories import NotificationTemplateRepository


def get_template(session: Session, entry_id: int) -> NotificationTemplate:
    """Return the requested template version or raise an error if it does not exist."""

    template = NotificationTemplateRepository(session).get(entry_id)
    if template is None:
        raise LookupError("Plantilla no encontrada")
    return template
