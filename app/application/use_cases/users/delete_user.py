"""Use case for removing a recipient."""

from sqlalchemy.orm import Session

from app.infrastructure.repositories import UserRepository

from .get_user import get_user


def delete_user(session: Session, user_id: int) -> None:
    """Soft delete the specified user so its history stays queryable."""

    user = get_user(session, user_id)
    user.deleted = True
    user.is_active = False
    UserRepository(session).update(user)
