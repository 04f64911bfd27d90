"""Domain events produced when notifiable records are created."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.task import Task, Announcement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainEvent:
    """A record insertion that may notify its audience. Not persisted."""
    entity_id: str
    category: str  # task, announcement
    title: str
    description: Optional[str] = None
    section_id: Optional[str] = None
    department_id: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[str] = None
    is_admin_task: bool = False
    created_by: Optional[str] = None


def task_event(task: Task) -> DomainEvent:
    """Event for a newly inserted task."""
    return DomainEvent(
        entity_id=task.id,
        category="task",
        title=task.name,
        description=task.description,
        section_id=task.section_id,
        department_id=task.department_id,
        due_date=task.due_date,
        priority=task.priority,
        is_admin_task=bool(task.is_admin_task),
        created_by=task.created_by,
    )


def announcement_event(announcement: Announcement) -> DomainEvent:
    """Event for a newly inserted announcement."""
    return DomainEvent(
        entity_id=announcement.id,
        category="announcement",
        title=announcement.title,
        description=announcement.content,
        section_id=announcement.section_id,
        created_by=announcement.created_by,
    )


class EventPublisher(ABC):
    """Port the record-creation path calls after a notifiable insert.

    Delivery is at-most-once: implementations may drop events, and callers
    swallow whatever they raise.
    """

    @abstractmethod
    async def publish(self, session: AsyncSession, event: DomainEvent) -> None:
        ...

    async def drain(self) -> None:
        """Wait for background work started by publish()."""


class NullEventPublisher(EventPublisher):
    """Publisher used when notifications are disabled."""

    async def publish(self, session: AsyncSession, event: DomainEvent) -> None:
        logger.debug(f"Notifications disabled; dropping {event.category} event {event.entity_id}")
