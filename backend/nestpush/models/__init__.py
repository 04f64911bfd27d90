"""Database models."""
from .organization import Department, Section
from .notification_preference import NotificationPreference, CATEGORY_FLAGS
from .user import User
from .device_token import DeviceToken
from .notification_history import NotificationHistory
from .task import Task, Announcement

__all__ = [
    "Department",
    "Section",
    "NotificationPreference",
    "CATEGORY_FLAGS",
    "User",
    "DeviceToken",
    "NotificationHistory",
    "Task",
    "Announcement",
]
