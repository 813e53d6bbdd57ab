"""SQLAlchemy model for the delivery audit log."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class DeliveryAttemptLogModel(Base):
    """Append-only row describing one delivery attempt or suppression."""

    __tablename__ = "delivery_attempt_log"
    __table_args__ = (
        Index("ix_attempt_log_user_channel", "user_id", "channel", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    notification_id = Column(
        Integer, ForeignKey("notification.id"), nullable=False, index=True
    )
    user_id = Column(Integer, nullable=False)
    channel = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False)
    error_message = Column(Text, nullable=True)
    attempt_number = Column(Integer, nullable=False)
    duration_ms = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)


__all__ = ["DeliveryAttemptLogModel"]
