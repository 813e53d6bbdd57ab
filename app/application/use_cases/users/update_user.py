"""Use case for updating recipient information."""

from dataclasses import replace

from sqlalchemy.orm import Session

from app.domain.entities import User
from app.domain.errors import ValidationError
from app.infrastructure.repositories import UserRepository

from .get_user import get_user
from .validators import normalize_email, normalize_locale, normalize_phone, normalize_timezone

_UNSET = object()


def update_user(
    session: Session,
    *,
    user_id: int,
    name: str | None = None,
    email: str | None | object = _UNSET,
    phone: str | None | object = _UNSET,
    push_token: str | None | object = _UNSET,
    locale: str | None = None,
    timezone: str | None | object = _UNSET,
    is_active: bool | None = None,
) -> User:
    """Update the provided user with the new values.

    Contact fields accept ``None`` to clear the address; omitted fields keep
    their current value.
    """

    repository = UserRepository(session)
    current_user = get_user(session, user_id)

    new_email = current_user.email
    if email is not _UNSET:
        new_email = normalize_email(email)  # type: ignore[arg-type]
        if new_email and new_email != current_user.email:
            existing_with_email = repository.get_by_email(new_email)
            if existing_with_email and existing_with_email.id != user_id:
                raise ValidationError("El correo electrónico ya está registrado")

    if name is not None and not name.strip():
        raise ValidationError("El nombre es obligatorio")

    updated_user = replace(
        current_user,
        name=name.strip() if name is not None else current_user.name,
        email=new_email,
        phone=normalize_phone(phone) if phone is not _UNSET else current_user.phone,  # type: ignore[arg-type]
        push_token=(
            ((push_token or "").strip() or None)  # type: ignore[union-attr]
            if push_token is not _UNSET
            else current_user.push_token
        ),
        locale=normalize_locale(locale, current_user.locale) if locale is not None else current_user.locale,
        timezone=(
            normalize_timezone(timezone)  # type: ignore[arg-type]
            if timezone is not _UNSET
            else current_user.timezone
        ),
        is_active=is_active if is_active is not None else current_user.is_active,
    )
    return repository.update(updated_user)
