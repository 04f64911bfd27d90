"""Push dispatcher API endpoint."""
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import settings
from ..database import get_db, get_session_factory
from ..errors import DispatchValidationError
from ..schemas.push import DispatchRequest, DispatchResponse
from ..services.dispatcher import Dispatcher
from ..services.push_gateway import PushGateway, get_push_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/push", tags=["push"])


def is_authorized(authorization: Optional[str]) -> bool:
    """Bearer check against SERVICE_ROLE_KEY; open when no key is configured."""
    if not settings.service_role_key:
        return True
    expected = f"Bearer {settings.service_role_key}"
    return bool(authorization) and hmac.compare_digest(authorization, expected)


@router.post(
    "/send",
    response_model=DispatchResponse,
    response_model_by_alias=True,
)
async def send_push(
    request: DispatchRequest,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    gateway: PushGateway = Depends(get_push_gateway),
    authorization: Optional[str] = Header(None),
):
    """Send a notification to users' active tokens or to explicit tokens.

    Returns 200 with per-token results once every token has been attempted,
    including the case of zero recipients.
    """
    if not is_authorized(authorization):
        logger.warning("Rejected push request: invalid or missing service key")
        return JSONResponse(status_code=401, content={"error": "Invalid or missing service key"})

    dispatcher = Dispatcher(gateway, session_factory)
    try:
        return await dispatcher.dispatch(db, request)
    except DispatchValidationError as e:
        logger.warning(f"Rejected push request: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception as e:
        logger.error(f"Push send failed: {type(e).__name__}: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(e)},
        )
