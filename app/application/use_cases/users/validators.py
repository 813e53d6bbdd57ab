"""Common validation helpers for user use cases."""

import re

from app.domain.errors import ValidationError
from app.utils import is_known_timezone

_PHONE_PATTERN = re.compile(r"^\+[1-9]\d{6,14}$")
_LOCALE_PATTERN = re.compile(r"^[A-Za-z]{2,3}(?:[-_][A-Za-z0-9]{2,8})?$")


def normalize_email(email: str | None) -> str | None:
    """Return a normalized address or raise ``ValidationError``."""

    if email is None:
        return None
    normalized = email.strip()
    if not normalized:
        return None
    if normalized.count("@") != 1:
        raise ValidationError("El correo electrónico no es válido")
    local_part, domain = normalized.split("@", 1)
    if not local_part or "." not in domain:
        raise ValidationError("El correo electrónico no es válido")
    return f"{local_part}@{domain.lower()}"


def normalize_phone(phone: str | None) -> str | None:
    """Return an E.164 phone number."""

    if phone is None:
        return None
    normalized = re.sub(r"[\s\-()]", "", phone)
    if not normalized:
        return None
    if not _PHONE_PATTERN.match(normalized):
        raise ValidationError("El teléfono debe tener formato internacional (+5491122334455)")
    return normalized


def normalize_locale(locale: str | None, default: str) -> str:
    if locale is None or not locale.strip():
        return default
    normalized = locale.strip()
    if not _LOCALE_PATTERN.match(normalized):
        raise ValidationError("El idioma no es válido")
    return normalized.replace("_", "-").lower()


def normalize_timezone(tz_name: str | None) -> str | None:
    if tz_name is None or not tz_name.strip():
        return None
    normalized = tz_name.strip()
    if not is_known_timezone(normalized):
        raise ValidationError(f"La zona horaria '{normalized}' no es válida")
    return normalized


__all__ = ["normalize_email", "normalize_locale", "normalize_phone", "normalize_timezone"]
