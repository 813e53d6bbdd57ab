"""Use case for registering notification recipients."""

from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import User
from app.domain.errors import ValidationError
from app.infrastructure.repositories import UserRepository

from .validators import normalize_email, normalize_locale, normalize_phone, normalize_timezone


def create_user(
    session: Session,
    *,
    name: str,
    email: str | None = None,
    phone: str | None = None,
    push_token: str | None = None,
    locale: str | None = None,
    timezone: str | None = None,
    is_active: bool = True,
) -> User:
    """Create a new recipient ensuring unique email addresses."""

    repository = UserRepository(session)

    normalized_name = (name or "").strip()
    if not normalized_name:
        raise ValidationError("El nombre es obligatorio")

    normalized_email = normalize_email(email)
    if normalized_email and repository.get_by_email(normalized_email):
        raise ValidationError("El correo electrónico ya está registrado")

    user = User(
        id=None,
        name=normalized_name,
        email=normalized_email,
        phone=normalize_phone(phone),
        push_token=(push_token or "").strip() or None,
        locale=normalize_locale(locale, get_settings().default_language),
        timezone=normalize_timezone(timezone),
        is_active=is_active,
        deleted=False,
        created_at=None,
        updated_at=None,
    )
    return repository.create(user)
