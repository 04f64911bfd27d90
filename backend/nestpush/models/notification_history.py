"""NotificationHistory model - append-only log of delivery attempts."""
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON

from ..database import Base
from ..utils.db_utils import new_id, utcnow


class NotificationHistory(Base):
    """Record of one push attempt to one token."""

    __tablename__ = "notification_history"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    title = Column(String, nullable=False)
    body = Column(String, nullable=False)
    data = Column(JSON, default=dict)
    notification_type = Column(String, default="task", index=True)  # task, announcement, reminder, system
    related_id = Column(String, nullable=True, index=True)
    fcm_token = Column(String, nullable=True)
    status = Column(String, nullable=False)  # sent, failed
    error_message = Column(String, nullable=True)
    sent_at = Column(DateTime, default=utcnow, index=True)
