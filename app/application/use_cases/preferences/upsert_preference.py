"""Use case for creating or replacing a delivery preference."""

from datetime import time

from sqlalchemy.orm import Session

from app.application.use_cases.notifications.validators import ensure_enum
from app.application.use_cases.users import get_user
from app.domain.entities import NotificationChannel, NotificationPreference, NotificationType
from app.domain.errors import ValidationError
from app.infrastructure.repositories import NotificationPreferenceRepository


def upsert_preference(
    session: Session,
    *,
    user_id: int,
    notification_type: NotificationType | str,
    channel: NotificationChannel | str,
    enabled: bool = True,
    quiet_hours_start: time | None = None,
    quiet_hours_end: time | None = None,
    max_per_hour: int | None = None,
    max_per_day: int | None = None,
) -> NotificationPreference:
    """Store the preference for ``(user_id, notification_type, channel)``.

    Quiet hours must be given as a pair. A window whose start is later than
    its end wraps midnight.
    """

    get_user(session, user_id)

    if (quiet_hours_start is None) != (quiet_hours_end is None):
        raise ValidationError("Las horas de silencio requieren inicio y fin")
    for label, cap in (("max_per_hour", max_per_hour), ("max_per_day", max_per_day)):
        if cap is not None and cap < 1:
            raise ValidationError(f"El límite {label} debe ser mayor que cero")
    if max_per_hour and max_per_day and max_per_hour > max_per_day:
        raise ValidationError("El límite por hora no puede superar el límite diario")

    preference = NotificationPreference(
        id=None,
        user_id=user_id,
        type=ensure_enum(NotificationType, notification_type, "tipo"),
        channel=ensure_enum(NotificationChannel, channel, "canal"),
        enabled=enabled,
        quiet_hours_start=quiet_hours_start,
        quiet_hours_end=quiet_hours_end,
        max_per_hour=max_per_hour,
        max_per_day=max_per_day,
    )
    return NotificationPreferenceRepository(session).upsert(preference)
