"""SQLAlchemy model for notification templates."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class NotificationTemplateModel(Base):
    """Database representation of a template version."""

    __tablename__ = "notification_template"
    __table_args__ = (
        UniqueConstraint(
            "template_id",
            "channel",
            "language",
            "version",
            name="uq_template_version",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(String(100), nullable=False, index=True)
    channel = Column(String(20), nullable=False)
    language = Column(String(10), nullable=False)
    subject = Column(String(255), nullable=True)
    body = Column(Text, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)


__all__ = ["NotificationTemplateModel"]
