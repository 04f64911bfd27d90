"""Pydantic schemas for API request/response models."""
from .device import (
    DeviceInfo,
    DeviceRegisterRequest,
    DeviceRegisterResponse,
    DeviceUnregisterResponse,
    DeviceCount,
)
from .push import (
    NotificationAction,
    NotificationContent,
    DispatchRequest,
    DispatchResponse,
    DispatchSummary,
    TokenResult,
)
from .preference import (
    PreferenceResponse,
    PreferenceUpdate,
)
from .records import (
    UserCreate,
    UserResponse,
    TaskCreate,
    TaskResponse,
    AnnouncementCreate,
    AnnouncementResponse,
)
from .history import (
    HistoryEntry,
    HistoryStats,
)

__all__ = [
    "DeviceInfo",
    "DeviceRegisterRequest",
    "DeviceRegisterResponse",
    "DeviceUnregisterResponse",
    "DeviceCount",
    "NotificationAction",
    "NotificationContent",
    "DispatchRequest",
    "DispatchResponse",
    "DispatchSummary",
    "TokenResult",
    "PreferenceResponse",
    "PreferenceUpdate",
    "UserCreate",
    "UserResponse",
    "TaskCreate",
    "TaskResponse",
    "AnnouncementCreate",
    "AnnouncementResponse",
    "HistoryEntry",
    "HistoryStats",
]
