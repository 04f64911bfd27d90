"""Tests for the event trigger: record creation and the dispatcher call."""

import json
from datetime import datetime

import httpx
import pytest
from sqlalchemy import select

from conftest import RecordingPublisher
from nestpush.models import Announcement, Task
from nestpush.schemas.records import AnnouncementCreate, TaskCreate, UserCreate
from nestpush.services.events import announcement_event, task_event
from nestpush.services.notifier import DispatcherNotifier, build_dispatch_payload
from nestpush.services.records import RecordService

DISPATCH_URL = "http://dispatcher.test/api/push/send"


def _notifier(handler) -> DispatcherNotifier:
    return DispatcherNotifier(
        url=DISPATCH_URL,
        service_key="service-key",
        timeout=2.0,
        transport=httpx.MockTransport(handler),
    )


class _Capture:
    """MockTransport handler recording dispatcher requests."""

    def __init__(self, status_code=200):
        self.requests = []
        self.status_code = status_code

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"success": True, "summary": {"total": 1, "successful": 1}})

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]


# ═══════════════════════════════════════════════════════════════════════
# Test: Payloads
# ═══════════════════════════════════════════════════════════════════════


class TestPayload:
    """Human-readable notification content built from domain events."""

    @pytest.mark.asyncio
    async def test_section_task_payload(self, session, org):
        task = Task(
            id="task-1",
            name="Lab report",
            section_id=org["section_a"].id,
            due_date=datetime(2026, 3, 5),
            created_by=org["adam"].id,
        )
        payload = await build_dispatch_payload(session, task_event(task), {org["alice"].id})

        assert payload["userIds"] == [org["alice"].id]
        assert payload["notification"]["title"] == "New Task for Section A"
        assert payload["notification"]["body"] == "Lab report - Due: Mar 05, 2026 (by Adam)"
        assert payload["notification"]["tag"] == "task-task-1"
        assert payload["data"]["taskId"] == "task-1"
        assert payload["data"]["category"] == "task"
        assert payload["data"]["creatorName"] == "Adam"

    @pytest.mark.asyncio
    async def test_admin_task_payload(self, session, org):
        task = Task(id="task-2", name="Audit", is_admin_task=True)
        payload = await build_dispatch_payload(session, task_event(task), {org["alice"].id})

        assert payload["notification"]["title"] == "New Admin Task"
        assert payload["notification"]["body"] == "Audit"
        assert payload["notification"]["requireInteraction"] is True
        assert payload["data"]["taskType"] == "admin-task"
        assert "creatorName" not in payload["data"]

    @pytest.mark.asyncio
    async def test_announcement_body_is_truncated(self, session, org):
        announcement = Announcement(id="ann-1", title="Holiday", content="x" * 150)
        payload = await build_dispatch_payload(session, announcement_event(announcement), {org["bob"].id})

        assert payload["notification"]["title"] == "New Announcement: Holiday"
        assert payload["notification"]["body"] == "x" * 100 + "..."
        assert payload["data"]["type"] == "new_announcement"
        assert payload["data"]["announcementId"] == "ann-1"

    @pytest.mark.asyncio
    async def test_announcement_without_content(self, session, org):
        announcement = Announcement(id="ann-2", title="Notice")
        payload = await build_dispatch_payload(session, announcement_event(announcement), {org["bob"].id})

        assert payload["notification"]["body"] == "A new announcement has been posted."


# ═══════════════════════════════════════════════════════════════════════
# Test: Dispatcher call
# ═══════════════════════════════════════════════════════════════════════


class TestDispatcherNotifier:
    """One best-effort POST per notifiable event."""

    @pytest.mark.asyncio
    async def test_task_creation_calls_dispatcher(self, session, org):
        capture = _Capture()
        notifier = _notifier(capture)
        service = RecordService(notifier)

        task = await service.create_task(
            session, TaskCreate(name="Lab report", section_id=org["section_a"].id, created_by=org["adam"].id)
        )
        await notifier.drain()

        assert len(capture.requests) == 1
        request = capture.requests[0]
        assert str(request.url) == DISPATCH_URL
        assert request.headers["Authorization"] == "Bearer service-key"
        assert capture.payloads[0]["userIds"] == [org["alice"].id]
        assert capture.payloads[0]["data"]["taskId"] == task.id

    @pytest.mark.asyncio
    async def test_empty_audience_skips_call(self, session, org):
        capture = _Capture()
        notifier = _notifier(capture)

        await RecordService(notifier).create_task(
            session, TaskCreate(name="Solo", section_id=org["section_a"].id, created_by=org["alice"].id)
        )
        await notifier.drain()

        assert capture.requests == []

    @pytest.mark.asyncio
    async def test_draft_task_does_not_notify(self, session, org):
        capture = _Capture()
        notifier = _notifier(capture)

        await RecordService(notifier).create_task(
            session, TaskCreate(name="Draft", status="draft", section_id=org["section_a"].id)
        )
        await notifier.drain()

        assert capture.requests == []

    @pytest.mark.asyncio
    async def test_unreachable_dispatcher_does_not_fail_insert(self, session, org):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        notifier = _notifier(handler)
        task = await RecordService(notifier).create_task(
            session, TaskCreate(name="Lab report", section_id=org["section_a"].id)
        )
        await notifier.drain()

        result = await session.execute(select(Task).where(Task.id == task.id))
        assert result.scalar_one().name == "Lab report"

    @pytest.mark.asyncio
    async def test_dispatcher_error_status_is_only_logged(self, session, org):
        capture = _Capture(status_code=500)
        notifier = _notifier(capture)

        announcement = await RecordService(notifier).create_announcement(
            session, AnnouncementCreate(title="Holiday", content="Office closed")
        )
        await notifier.drain()

        assert len(capture.requests) == 1
        assert announcement.id


# ═══════════════════════════════════════════════════════════════════════
# Test: Record service
# ═══════════════════════════════════════════════════════════════════════


class TestRecordService:
    """Inserts commit regardless of what the publisher does."""

    @pytest.mark.asyncio
    async def test_publisher_failure_is_swallowed(self, session, org):
        task = await RecordService(RecordingPublisher(fail=True)).create_task(
            session, TaskCreate(name="Still saved", department_id=org["department"].id)
        )

        # Returned record stays readable after the failed notification
        assert task.name == "Still saved"
        result = await session.execute(select(Task).where(Task.id == task.id))
        assert result.scalar_one_or_none() is not None

    @pytest.mark.asyncio
    async def test_announcement_publisher_failure_is_swallowed(self, session, org):
        announcement = await RecordService(RecordingPublisher(fail=True)).create_announcement(
            session, AnnouncementCreate(title="Holiday", section_id=org["section_b"].id)
        )

        assert announcement.title == "Holiday"
        assert announcement.section_id == org["section_b"].id

    @pytest.mark.asyncio
    async def test_announcement_event(self, session, org):
        publisher = RecordingPublisher()
        announcement = await RecordService(publisher).create_announcement(
            session, AnnouncementCreate(title="Holiday", section_id=org["section_b"].id)
        )

        assert [e.entity_id for e in publisher.events] == [announcement.id]
        assert publisher.events[0].category == "announcement"
        assert publisher.events[0].section_id == org["section_b"].id

    @pytest.mark.asyncio
    async def test_without_publisher_nothing_is_sent(self, session, org):
        task = await RecordService().create_task(session, TaskCreate(name="Quiet"))
        assert task.id

    @pytest.mark.asyncio
    async def test_deactivated_user_leaves_audience(self, session, org):
        publisher = RecordingPublisher()
        service = RecordService(publisher)
        user = await service.create_user(
            session, UserCreate(name="Eve", email="eve@example.com", section_id=org["section_b"].id)
        )
        await service.deactivate_user(session, user.id)

        capture = _Capture()
        notifier = _notifier(capture)
        await RecordService(notifier).create_task(
            session, TaskCreate(name="Section B task", section_id=org["section_b"].id)
        )
        await notifier.drain()

        assert capture.payloads[0]["userIds"] == [org["bob"].id]

    @pytest.mark.asyncio
    async def test_deactivate_unknown_user(self, session, org):
        assert await RecordService().deactivate_user(session, "missing") is None
