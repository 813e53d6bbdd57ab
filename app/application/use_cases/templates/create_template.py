"""Use case for publishing a new template version."""

from sqlalchemy.orm import Session

from app.application.use_cases.notifications.templating import find_placeholders
from app.application.use_cases.notifications.validators import ensure_enum, ensure_template_key
from app.domain.entities import NotificationChannel, NotificationTemplate
from app.domain.errors import ValidationError
from app.infrastructure.repositories import NotificationTemplateRepository

_UNBALANCED_MARKERS = ("{{", "}}")


def create_template(
    session: Session,
    *,
    template_id: str,
    channel: NotificationChannel | str,
    language: str,
    body: str,
    subject: str | None = None,
    is_active: bool = True,
) -> NotificationTemplate:
    """Store ``body``/``subject`` as the next version of the template.

    Versions are numbered per ``(template_id, channel, language)`` starting
    at 1. Older versions are kept so past notifications remain traceable.
    """

    key = ensure_template_key(template_id)
    channel = ensure_enum(NotificationChannel, channel, "canal")
    normalized_language = (language or "").strip().replace("_", "-").lower()
    if not normalized_language:
        raise ValidationError("El idioma de la plantilla es obligatorio")
    if not (body or "").strip():
        raise ValidationError("El cuerpo de la plantilla no puede estar vacío")
    if subject is not None and not channel.supports_subject:
        raise ValidationError(f"El canal {channel.value} no admite asunto")

    for text in (subject, body):
        _ensure_well_formed(text)

    repository = NotificationTemplateRepository(session)
    template = NotificationTemplate(
        id=None,
        template_id=key,
        channel=channel,
        language=normalized_language,
        subject=subject.strip() if subject else None,
        body=body,
        version=repository.next_version(key, channel, normalized_language),
        is_active=is_active,
    )
    return repository.create(template)


def _ensure_well_formed(text: str | None) -> None:
    if not text:
        return
    opened = text.count(_UNBALANCED_MARKERS[0])
    closed = text.count(_UNBALANCED_MARKERS[1])
    if opened != closed or opened != len(find_placeholders(text)):
        raise ValidationError("La plantilla contiene marcadores {{...}} mal formados")
