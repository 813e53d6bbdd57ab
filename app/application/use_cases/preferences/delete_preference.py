"""Use case for deleting a delivery preference."""

from sqlalchemy.orm import Session

from app.application.use_cases.notifications.validators import ensure_enum
from app.domain.entities import NotificationChannel, NotificationType
from app.infrastructure.repositories import NotificationPreferenceRepository


def delete_preference(
    session: Session,
    *,
    user_id: int,
    notification_type: NotificationType | str,
    channel: NotificationChannel | str,
) -> None:
    """Delete the preference or raise an error if it does not exist."""

    deleted = NotificationPreferenceRepository(session).delete(
        user_id,
        ensure_enum(NotificationType, notification_type, "tipo"),
        ensure_enum(NotificationChannel, channel, "canal"),
    )
    if not deleted:
        raise LookupError("Preferencia no encontrada")
