"""Notification preference API endpoints."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.preference import PreferenceResponse, PreferenceUpdate
from ..services.preference_store import preference_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/preferences", tags=["preferences"])


@router.get("/{user_id}", response_model=PreferenceResponse)
async def get_preferences(user_id: str, db: AsyncSession = Depends(get_db)):
    """Get a user's preferences. Users without a row get the defaults."""
    preference = await preference_store.get(db, user_id)
    if preference is None:
        return PreferenceResponse(user_id=user_id)
    return preference


@router.put("/{user_id}", response_model=PreferenceResponse)
async def update_preferences(
    user_id: str,
    changes: PreferenceUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update a user's preferences (partial)."""
    return await preference_store.update(db, user_id, changes)
