"""Notification history API endpoints."""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.history import HistoryEntry, HistoryStats
from ..services.history import history_store

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("/stats", response_model=HistoryStats)
async def get_history_stats(
    hours: int = Query(24, ge=1, le=24 * 30),
    db: AsyncSession = Depends(get_db),
):
    """Delivery counts for the last N hours."""
    return HistoryStats(**await history_store.stats(db, hours=hours))


@router.get("/{user_id}", response_model=List[HistoryEntry])
async def get_user_history(
    user_id: str,
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Most recent delivery attempts for a user."""
    return await history_store.recent_for_user(db, user_id, limit=limit)
