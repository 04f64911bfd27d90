"""Pytest configuration and shared fixtures."""

from typing import Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

from nestpush.database import build_engine, build_session_factory, create_tables, get_db, get_session_factory
from nestpush.models import Department, Section, User
from nestpush.schemas.device import DeviceInfo
from nestpush.services.events import DomainEvent, EventPublisher
from nestpush.services.push_gateway import GatewayResult, Outcome, PushGateway


class FakeGateway(PushGateway):
    """Push gateway double: per-token canned outcomes, success otherwise."""

    def __init__(self, outcomes: Optional[Dict[str, GatewayResult]] = None):
        self.outcomes = outcomes or {}
        self.sent: List[Tuple[str, dict]] = []

    async def send(self, token: str, message: dict) -> GatewayResult:
        self.sent.append((token, message))
        return self.outcomes.get(token, GatewayResult(Outcome.SUCCESS, message_id=f"msg-{token}"))

    @property
    def tokens_sent(self) -> List[str]:
        return [token for token, _ in self.sent]


class RecordingPublisher(EventPublisher):
    """Collects published events instead of calling the dispatcher."""

    def __init__(self, fail: bool = False):
        self.events: List[DomainEvent] = []
        self.fail = fail

    async def publish(self, session, event: DomainEvent) -> None:
        if self.fail:
            raise RuntimeError("dispatcher unavailable")
        self.events.append(event)


def device(install_id: str, platform: str = "web") -> DeviceInfo:
    return DeviceInfo(platform=platform, install_id=install_id)


# ═══════════════════════════════════════════════════════════════════════
# Database
# ═══════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def org(session):
    """One department with sections A and B and a handful of users.

    Section A: alice (member), adam (section_admin), carol (member, inactive)
    Section B: bob (member)
    No section: dave (admin, department only)
    """
    department = Department(name="Engineering")
    session.add(department)
    await session.flush()

    section_a = Section(name="Section A", department_id=department.id)
    section_b = Section(name="Section B", department_id=department.id)
    session.add_all([section_a, section_b])
    await session.flush()

    users = {
        "alice": User(name="Alice", email="alice@example.com", role="member",
                      section_id=section_a.id, department_id=department.id),
        "adam": User(name="Adam", email="adam@example.com", role="section_admin",
                     section_id=section_a.id, department_id=department.id),
        "carol": User(name="Carol", email="carol@example.com", role="member",
                      section_id=section_a.id, department_id=department.id, is_active=False),
        "bob": User(name="Bob", email="bob@example.com", role="member",
                    section_id=section_b.id, department_id=department.id),
        "dave": User(name="Dave", email="dave@example.com", role="admin",
                     department_id=department.id),
    }
    session.add_all(users.values())
    await session.commit()

    return {
        "department": department,
        "section_a": section_a,
        "section_b": section_b,
        **users,
    }


@pytest.fixture
def gateway():
    return FakeGateway()


# ═══════════════════════════════════════════════════════════════════════
# API
# ═══════════════════════════════════════════════════════════════════════


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest_asyncio.fixture
async def client(session_factory, gateway, publisher):
    """HTTP client against the app, wired to the test database and gateway."""
    from nestpush.main import app
    from nestpush.services.notifier import get_event_publisher
    from nestpush.services.push_gateway import get_push_gateway

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_push_gateway] = lambda: gateway
    app.dependency_overrides[get_event_publisher] = lambda: publisher

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
