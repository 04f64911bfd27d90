"""Notification history schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class HistoryEntry(BaseModel):
    """One recorded delivery attempt."""
    id: str
    user_id: Optional[str] = None
    title: str
    body: str
    notification_type: Optional[str] = None
    related_id: Optional[str] = None
    status: str
    error_message: Optional[str] = None
    sent_at: datetime

    class Config:
        from_attributes = True


class HistoryStats(BaseModel):
    """Delivery counts over a time window."""
    sent: int = 0
    failed: int = 0
    delivery_rate: float = 0.0
