"""Push dispatcher request/response schemas.

Field names follow the JSON wire format (camelCase) through aliases.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class NotificationAction(BaseModel):
    """Button shown on the rendered notification."""
    action: str
    title: str
    icon: Optional[str] = None


class NotificationContent(BaseModel):
    """Visible part of a push notification.

    title and body are optional here so that a missing field becomes a
    dispatcher validation error (400) rather than a schema error.
    """
    title: Optional[str] = None
    body: Optional[str] = None
    icon: Optional[str] = None
    badge: Optional[str] = None
    tag: Optional[str] = None
    require_interaction: Optional[bool] = Field(None, alias="requireInteraction")
    actions: Optional[List[NotificationAction]] = None

    class Config:
        populate_by_name = True


class DispatchRequest(BaseModel):
    """Body of POST /api/push/send."""
    user_ids: Optional[List[str]] = Field(None, alias="userIds")
    tokens: Optional[List[str]] = None
    notification: Optional[NotificationContent] = None
    data: Optional[Dict[str, Any]] = None

    class Config:
        populate_by_name = True


class TokenResult(BaseModel):
    """Outcome of the send to one token."""
    success: bool
    status: str  # sent, failed
    error: Optional[str] = None
    token_invalid: bool = Field(False, alias="tokenInvalid")
    user_id: Optional[str] = Field(None, alias="userId")

    class Config:
        populate_by_name = True


class DispatchSummary(BaseModel):
    """Aggregate counts for one dispatch."""
    total: int = 0
    successful: int = 0
    failed: int = 0
    user_ids: int = Field(0, alias="userIds")

    class Config:
        populate_by_name = True


class DispatchResponse(BaseModel):
    """Response of a processed dispatch (including zero recipients)."""
    success: bool = True
    message: Optional[str] = None
    summary: DispatchSummary
    results: Dict[str, TokenResult] = Field(default_factory=dict)
