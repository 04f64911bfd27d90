"""Record creation - the write path that raises domain events.

Inserts always commit first. Publishing happens afterwards and can never
fail the insert: any error from the publisher is logged and swallowed.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.task import Task, Announcement
from ..models.user import User
from ..schemas.records import AnnouncementCreate, TaskCreate, UserCreate
from ..utils.db_utils import retry_on_lock
from .events import DomainEvent, EventPublisher, NullEventPublisher, announcement_event, task_event

logger = logging.getLogger(__name__)


class RecordService:
    """Creates tasks, announcements and users."""

    def __init__(self, publisher: Optional[EventPublisher] = None):
        self.publisher = publisher or NullEventPublisher()

    async def _publish(self, session: AsyncSession, event: DomainEvent, record):
        """Hand the event to the publisher without ever raising."""
        try:
            await self.publisher.publish(session, event)
        except Exception as e:
            logger.error(f"Notification for {event.category} {event.entity_id} failed: {type(e).__name__}: {e}")
            # The record is already committed; only the notification read is discarded.
            # Rollback expires the record, so reload it for the caller.
            await session.rollback()
            await session.refresh(record)

    async def create_task(self, session: AsyncSession, data: TaskCreate) -> Task:
        """Insert a task and notify its audience if it qualifies."""
        task = Task(**data.model_dump())
        session.add(task)
        await retry_on_lock(session.commit)
        await session.refresh(task)
        logger.info(f"Task created: {task.id} ({task.name})")

        if task.is_notifiable:
            await self._publish(session, task_event(task), task)
        else:
            logger.debug(f"Task {task.id} is not notifiable (status={task.status}, active={task.is_active})")
        return task

    async def create_announcement(self, session: AsyncSession, data: AnnouncementCreate) -> Announcement:
        """Insert an announcement and notify its audience."""
        announcement = Announcement(**data.model_dump())
        session.add(announcement)
        await retry_on_lock(session.commit)
        await session.refresh(announcement)
        logger.info(f"Announcement created: {announcement.id} ({announcement.title})")

        await self._publish(session, announcement_event(announcement), announcement)
        return announcement

    async def create_user(self, session: AsyncSession, data: UserCreate) -> User:
        """Insert a user; default preferences are created with the row."""
        user = User(**data.model_dump())
        session.add(user)
        await retry_on_lock(session.commit)
        await session.refresh(user)
        logger.info(f"User created: {user.id} ({user.email})")
        return user

    async def deactivate_user(self, session: AsyncSession, user_id: str) -> Optional[User]:
        """Deactivated accounts drop out of every audience."""
        result = await session.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            return None
        user.is_active = False
        await retry_on_lock(session.commit)
        logger.info(f"User deactivated: {user_id}")
        return user
