"""Notification preference schemas."""
from datetime import time
from typing import Optional
from pydantic import BaseModel


class PreferenceResponse(BaseModel):
    """A user's notification preferences."""
    user_id: str
    task_notifications: Optional[bool] = True
    announcement_notifications: Optional[bool] = True
    reminder_notifications: Optional[bool] = True
    email_notifications: Optional[bool] = True
    quiet_hours_start: Optional[time] = None
    quiet_hours_end: Optional[time] = None
    timezone: Optional[str] = "UTC"

    class Config:
        from_attributes = True


class PreferenceUpdate(BaseModel):
    """Partial update of preferences; omitted fields are left unchanged."""
    task_notifications: Optional[bool] = None
    announcement_notifications: Optional[bool] = None
    reminder_notifications: Optional[bool] = None
    email_notifications: Optional[bool] = None
    quiet_hours_start: Optional[time] = None
    quiet_hours_end: Optional[time] = None
    timezone: Optional[str] = None
