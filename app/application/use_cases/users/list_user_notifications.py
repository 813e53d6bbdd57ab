"""Use case for reading a recipient's notification inbox."""

from collections.abc import Sequence

from sqlalchemy.orm import Session

from app.domain.entities import Notification
from app.infrastructure.repositories import NotificationRepository

from .get_user import get_user


def list_user_notifications(
    session: Session, user_id: int, *, limit: int = 50
) -> Sequence[Notification]:
    """Return the most recent notifications addressed to ``user_id``."""

    get_user(session, user_id, include_deleted=True)
    return NotificationRepository(session).list_for_user(user_id, limit=limit)
