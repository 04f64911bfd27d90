"""Task, announcement and user API endpoints.

Creating a task or announcement commits the record and then hands a domain
event to the notifier; the response never waits on push delivery.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.records import (
    AnnouncementCreate,
    AnnouncementResponse,
    TaskCreate,
    TaskResponse,
    UserCreate,
    UserResponse,
)
from ..services.events import EventPublisher
from ..services.notifier import get_event_publisher
from ..services.records import RecordService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["records"])


def get_record_service(publisher: EventPublisher = Depends(get_event_publisher)) -> RecordService:
    return RecordService(publisher)


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(
    data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    service: RecordService = Depends(get_record_service),
):
    """Create a task. Non-draft tasks notify their audience."""
    return await service.create_task(db, data)


@router.post("/announcements", response_model=AnnouncementResponse, status_code=201)
async def create_announcement(
    data: AnnouncementCreate,
    db: AsyncSession = Depends(get_db),
    service: RecordService = Depends(get_record_service),
):
    """Create an announcement and notify its audience."""
    return await service.create_announcement(db, data)


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    service: RecordService = Depends(get_record_service),
):
    """Create a user account with default notification preferences."""
    try:
        return await service.create_user(db, data)
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="User with this email already exists")


@router.post("/users/{user_id}/deactivate", response_model=UserResponse)
async def deactivate_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    service: RecordService = Depends(get_record_service),
):
    """Deactivate a user account."""
    user = await service.deactivate_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
