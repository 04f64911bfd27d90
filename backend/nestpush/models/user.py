"""User model - accounts that can receive notifications."""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, event, insert

from ..database import Base
from ..utils.db_utils import new_id, utcnow
from .notification_preference import NotificationPreference


class User(Base):
    """A member of a section/department."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    role = Column(String, default="member")  # member, section_admin, admin, super-admin
    section_id = Column(String(36), ForeignKey("sections.id"), nullable=True, index=True)
    department_id = Column(String(36), ForeignKey("departments.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)


@event.listens_for(User, "after_insert")
def create_default_preferences(mapper, connection, target):
    """Every new account starts with default-allow notification preferences."""
    connection.execute(
        insert(NotificationPreference.__table__).values(
            id=new_id(),
            user_id=target.id,
            task_notifications=True,
            announcement_notifications=True,
            reminder_notifications=True,
            email_notifications=True,
            timezone="UTC",
            created_at=utcnow(),
            updated_at=utcnow(),
        )
    )
