"""Best-effort notifier - hands domain events to the push dispatcher over HTTP.

This is the event trigger: after a notifiable insert it resolves the
audience, builds a human-readable notification and fires one bounded POST at
the dispatcher endpoint in the background. At most one attempt is made and
every failure is logged and dropped. A durable outbox between record creation
and the dispatcher would be needed for stronger delivery guarantees.
"""
import asyncio
import logging
import time
from typing import Iterable, Optional, Set

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings, get_dispatcher_url
from ..models.organization import Section
from ..models.user import User
from .audience import audience_resolver
from .events import DomainEvent, EventPublisher

logger = logging.getLogger(__name__)

ANNOUNCEMENT_BODY_LIMIT = 100


async def _lookup_name(session: AsyncSession, column, key_column, key: Optional[str]) -> Optional[str]:
    if not key:
        return None
    result = await session.execute(select(column).where(key_column == key))
    return result.scalar_one_or_none()


def _task_content(event: DomainEvent, section_name: Optional[str], creator_name: Optional[str]) -> dict:
    if section_name:
        title = f"New Task for {section_name}"
    elif event.is_admin_task:
        title = "New Admin Task"
    else:
        title = "New Task Assigned"

    body = event.title
    if event.due_date:
        body = f"{body} - Due: {event.due_date.strftime('%b %d, %Y')}"
    if creator_name:
        body = f"{body} (by {creator_name})"

    return {
        "title": title,
        "body": body,
        "icon": settings.default_icon,
        "badge": settings.default_badge,
        "tag": f"task-{event.entity_id}",
        "requireInteraction": event.is_admin_task,
        "actions": [
            {"action": "view", "title": "View Task", "icon": settings.default_icon},
            {"action": "dismiss", "title": "Dismiss", "icon": settings.default_icon},
        ],
    }


def _announcement_content(event: DomainEvent) -> dict:
    content = event.description or "A new announcement has been posted."
    if len(content) > ANNOUNCEMENT_BODY_LIMIT:
        content = content[:ANNOUNCEMENT_BODY_LIMIT] + "..."
    return {
        "title": f"New Announcement: {event.title}",
        "body": content,
        "icon": settings.default_icon,
        "badge": settings.default_badge,
        "tag": f"announcement-{event.entity_id}",
        "requireInteraction": False,
    }


async def build_dispatch_payload(session: AsyncSession, event: DomainEvent, user_ids: Iterable[str]) -> dict:
    """Dispatcher request body for an event and its resolved audience."""
    creator_name = await _lookup_name(session, User.name, User.id, event.created_by)
    section_name = await _lookup_name(session, Section.name, Section.id, event.section_id)

    if event.category == "announcement":
        notification = _announcement_content(event)
        data = {
            "type": "new_announcement",
            "category": "announcement",
            "announcementId": event.entity_id,
            "sectionId": event.section_id,
        }
    else:
        notification = _task_content(event, section_name, creator_name)
        data = {
            "taskId": event.entity_id,
            "taskName": event.title,
            "taskType": "admin-task" if event.is_admin_task else "task",
            "category": "task",
            "sectionId": event.section_id,
            "departmentId": event.department_id,
            "dueDate": event.due_date.isoformat() if event.due_date else None,
            "priority": event.priority,
            "isAdminTask": event.is_admin_task,
        }

    data.update({
        "createdBy": event.created_by,
        "creatorName": creator_name,
        "url": settings.default_click_url,
        "timestamp": int(time.time()),
    })

    return {
        "userIds": sorted(user_ids),
        "notification": notification,
        "data": {k: v for k, v in data.items() if v is not None},
    }


class DispatcherNotifier(EventPublisher):
    """Event publisher that calls the dispatcher endpoint, fire-and-forget."""

    def __init__(
        self,
        url: Optional[str] = None,
        service_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url
        self._service_key = service_key
        self._timeout = timeout
        self._transport = transport
        self._pending: Set[asyncio.Task] = set()

    @property
    def url(self) -> str:
        return self._url or get_dispatcher_url()

    @property
    def headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        key = self._service_key or settings.service_role_key
        if key:
            headers["Authorization"] = f"Bearer {key}"
        return headers

    async def publish(self, session: AsyncSession, event: DomainEvent) -> None:
        """Resolve the audience and schedule the dispatcher call."""
        user_ids = await audience_resolver.resolve(session, event)
        if not user_ids:
            logger.info(f"No target users for {event.category} {event.entity_id}, skipping notification")
            return

        payload = await build_dispatch_payload(session, event, user_ids)
        logger.info(f"Sending {event.category} notification for {event.entity_id} to {len(user_ids)} user(s)")

        task = asyncio.create_task(self._post(payload, event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _post(self, payload: dict, event: DomainEvent):
        """One bounded attempt; the result is only logged."""
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout or settings.notifier_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(self.url, json=payload, headers=self.headers)

            if response.status_code == 200:
                summary = response.json().get("summary", {})
                logger.info(
                    f"Dispatcher processed {event.category} {event.entity_id}: "
                    f"{summary.get('successful', 0)}/{summary.get('total', 0)} sent"
                )
            else:
                logger.warning(
                    f"Dispatcher rejected {event.category} {event.entity_id}: "
                    f"{response.status_code} - {response.text}"
                )
        except Exception as e:
            logger.error(f"Failed to notify dispatcher for {event.category} {event.entity_id}: {type(e).__name__}: {e}")

    async def drain(self) -> None:
        """Wait for in-flight dispatcher calls (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


# Global instance
dispatcher_notifier = DispatcherNotifier()


def get_event_publisher() -> EventPublisher:
    """Dependency returning the publisher used by the record-creation path."""
    return dispatcher_notifier
