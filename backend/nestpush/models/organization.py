"""Department and Section models - the scopes a notification can target."""
from sqlalchemy import Column, String, DateTime, ForeignKey

from ..database import Base
from ..utils.db_utils import new_id, utcnow


class Department(Base):
    """A department grouping several sections."""

    __tablename__ = "departments"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime, default=utcnow)


class Section(Base):
    """An organizational unit whose members receive section tasks."""

    __tablename__ = "sections"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    department_id = Column(String(36), ForeignKey("departments.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow)
