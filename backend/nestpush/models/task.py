"""Task and Announcement models - the records whose creation triggers pushes."""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text

from ..database import Base
from ..utils.db_utils import new_id, utcnow


class Task(Base):
    """A work item, optionally scoped to a section or department."""

    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True)
    due_date = Column(DateTime, nullable=True)
    priority = Column(String, default="medium")  # low, medium, high
    status = Column(String, default="my-tasks")  # draft, my-tasks, in-progress, completed
    section_id = Column(String(36), ForeignKey("sections.id"), nullable=True, index=True)
    department_id = Column(String(36), ForeignKey("departments.id"), nullable=True)
    is_admin_task = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    @property
    def is_notifiable(self) -> bool:
        """Drafts and inactive tasks never notify."""
        return self.status != "draft" and self.is_active is not False


class Announcement(Base):
    """A section-wide (or global) announcement."""

    __tablename__ = "announcements"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=True)
    section_id = Column(String(36), ForeignKey("sections.id"), nullable=True, index=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)
