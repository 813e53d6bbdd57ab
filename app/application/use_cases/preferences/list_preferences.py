"""Use case for listing a recipient's delivery preferences."""

from collections.abc import Sequence

from sqlalchemy.orm import Session

from app.application.use_cases.users import get_user
from app.domain.entities import NotificationPreference
from app.infrastructure.repositories import NotificationPreferenceRepository


def list_preferences(session: Session, user_id: int) -> Sequence[NotificationPreference]:
    get_user(session, user_id)
    return NotificationPreferenceRepository(session).list_for_user(user_id)
