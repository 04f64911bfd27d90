"""Device registration API endpoints for push notifications."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.device import (
    DeviceCount,
    DeviceRegisterRequest,
    DeviceRegisterResponse,
    DeviceUnregisterResponse,
)
from ..services.token_store import token_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/devices", tags=["devices"])


@router.post("/register", response_model=DeviceRegisterResponse)
async def register_device(
    request: DeviceRegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Register a device token for push notifications.

    Clients call this whenever the gateway hands them a token (first
    permission grant, token refresh, app start). Re-registering the same
    device updates its row instead of adding a new one.
    """
    token_id = await token_store.upsert_token(
        db,
        user_id=request.user_id,
        token=request.token,
        device_type=request.device_type,
        device_info=request.device_info,
    )
    return DeviceRegisterResponse(
        success=True,
        token_id=token_id,
        message="Device registered successfully",
    )


@router.delete("/{token}", response_model=DeviceUnregisterResponse)
async def unregister_device(
    token: str,
    user_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    """Unregister a device from push notifications.

    This doesn't delete the record but marks it as inactive.
    """
    found = await token_store.revoke(db, user_id, token)
    if not found:
        raise HTTPException(status_code=404, detail="Device not found")

    return DeviceUnregisterResponse(
        success=True,
        message="Device unregistered successfully",
    )


@router.get("/count", response_model=DeviceCount)
async def get_device_count(db: AsyncSession = Depends(get_db)):
    """Get count of registered tokens (for admin dashboard)."""
    counts = await token_store.count_tokens(db)
    return DeviceCount(**counts)
