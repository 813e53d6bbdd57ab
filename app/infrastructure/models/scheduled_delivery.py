"""SQLAlchemy model for the retry/schedule queue."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class ScheduledDeliveryModel(Base):
    """Queue entry holding a notification until it becomes due."""

    __tablename__ = "scheduled_delivery"

    id = Column(Integer, primary_key=True, index=True)
    notification_id = Column(
        Integer,
        ForeignKey("notification.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    due_at = Column(DateTime(), nullable=False, index=True)
    reason = Column(String(20), nullable=False)
    claimed_by = Column(String(100), nullable=True)
    claimed_at = Column(DateTime(), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)


__all__ = ["ScheduledDeliveryModel"]
