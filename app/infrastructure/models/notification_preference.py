"""SQLAlchemy model for user delivery preferences."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Time,
    UniqueConstraint,
)

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class NotificationPreferenceModel(Base):
    """Database representation of a (user, type, channel) preference."""

    __tablename__ = "notification_preference"
    __table_args__ = (
        UniqueConstraint("user_id", "type", "channel", name="uq_preference_user_type_channel"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(String(20), nullable=False)
    channel = Column(String(20), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    quiet_hours_start = Column(Time(), nullable=True)
    quiet_hours_end = Column(Time(), nullable=True)
    max_per_hour = Column(Integer, nullable=True)
    max_per_day = Column(Integer, nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(DateTime(), nullable=True, onupdate=now_in_app_naive_datetime)


__all__ = ["NotificationPreferenceModel"]
