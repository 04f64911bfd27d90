"""Schemas for the records that feed the notification core."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    """Schema for creating a user account."""
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    role: str = Field(default="member", pattern=r"^(member|section_admin|admin|super-admin)$")
    section_id: Optional[str] = None
    department_id: Optional[str] = None


class UserResponse(BaseModel):
    """Schema for user response."""
    id: str
    name: str
    email: str
    role: str
    section_id: Optional[str] = None
    department_id: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TaskCreate(BaseModel):
    """Schema for creating a task."""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: str = "medium"
    status: str = "my-tasks"
    section_id: Optional[str] = None
    department_id: Optional[str] = None
    is_admin_task: bool = False
    created_by: Optional[str] = None


class TaskResponse(BaseModel):
    """Schema for task response."""
    id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    section_id: Optional[str] = None
    department_id: Optional[str] = None
    is_admin_task: bool = False
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AnnouncementCreate(BaseModel):
    """Schema for creating an announcement."""
    title: str = Field(..., min_length=1)
    content: Optional[str] = None
    section_id: Optional[str] = None
    created_by: Optional[str] = None


class AnnouncementResponse(BaseModel):
    """Schema for announcement response."""
    id: str
    title: str
    content: Optional[str] = None
    section_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
