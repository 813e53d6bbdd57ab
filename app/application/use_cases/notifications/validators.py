"""Validation helpers for notification use cases."""

from __future__ import annotations

from typing import Any, TypeVar

from app.domain.entities import (
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    User,
)
from app.domain.errors import ValidationError

_EnumT = TypeVar("_EnumT")


def ensure_enum(enum_cls: type[_EnumT], value: Any, label: str) -> _EnumT:
    """Coerce ``value`` into ``enum_cls`` or raise :class:`ValidationError`."""

    if value is None:
        raise ValidationError(f"El campo {label} es obligatorio")
    try:
        return enum_cls(value)  # type: ignore[call-arg]
    except ValueError as exc:
        raise ValidationError(f"Valor no válido para {label}: {value}") from exc


def normalize_notification(notification: Notification) -> Notification:
    """Validate the core fields of ``notification`` and coerce its enums."""

    if notification.user_id is None:
        raise ValidationError("El identificador del usuario es obligatorio")
    notification.channel = ensure_enum(NotificationChannel, notification.channel, "canal")
    notification.type = ensure_enum(NotificationType, notification.type, "tipo")
    notification.priority = ensure_enum(NotificationPriority, notification.priority, "prioridad")
    if not (notification.message or "").strip():
        raise ValidationError("El mensaje de la notificación no puede estar vacío")
    if notification.max_retries is None or notification.max_retries < 0:
        raise ValidationError("El número máximo de reintentos no puede ser negativo")
    notification.title = (notification.title or "").strip()
    return notification


def ensure_recipient(user: User | None, user_id: int | None) -> User:
    """Return ``user`` when it exists and can receive notifications."""

    if user is None:
        raise ValidationError(f"El usuario {user_id} no existe")
    if not user.can_receive_notifications():
        raise ValidationError(f"El usuario {user_id} no puede recibir notificaciones")
    return user


def ensure_template_key(template_id: str) -> str:
    normalized = (template_id or "").strip()
    if not normalized:
        raise ValidationError("El identificador de la plantilla es obligatorio")
    return normalized


__all__ = [
    "ensure_enum",
    "ensure_recipient",
    "ensure_template_key",
    "normalize_notification",
]
