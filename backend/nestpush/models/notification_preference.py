"""NotificationPreference model - per-user opt-in flags by category."""
from sqlalchemy import Column, String, Boolean, DateTime, Time, ForeignKey

from ..database import Base
from ..utils.db_utils import new_id, utcnow

# Category -> preference column
CATEGORY_FLAGS = {
    "task": "task_notifications",
    "announcement": "announcement_notifications",
    "reminder": "reminder_notifications",
    "email": "email_notifications",
}


class NotificationPreference(Base):
    """One row per user. Missing rows and null flags mean "allow"."""

    __tablename__ = "notification_preferences"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    task_notifications = Column(Boolean, default=True)
    announcement_notifications = Column(Boolean, default=True)
    reminder_notifications = Column(Boolean, default=True)
    email_notifications = Column(Boolean, default=True)
    quiet_hours_start = Column(Time, nullable=True)
    quiet_hours_end = Column(Time, nullable=True)
    timezone = Column(String, default="UTC")
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
