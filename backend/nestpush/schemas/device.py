"""Device registration schemas for API request/response models."""
import hashlib
from typing import Optional
from pydantic import BaseModel, Field


class DeviceInfo(BaseModel):
    """Known device attributes reported by the client at registration.

    Only ``platform`` and ``install_id`` (or ``user_agent`` when the client
    has no stable install id) identify the device; the rest is metadata.
    """
    platform: Optional[str] = None
    install_id: Optional[str] = Field(None, alias="installId")
    app_version: Optional[str] = Field(None, alias="appVersion")
    user_agent: Optional[str] = Field(None, alias="userAgent")
    language: Optional[str] = None
    timezone: Optional[str] = None
    model: Optional[str] = None

    class Config:
        populate_by_name = True
        extra = "ignore"
        protected_namespaces = ()

    def fingerprint(self, device_type: str) -> str:
        """Stable per-device identifier, deterministic for equal attributes."""
        identity = self.install_id or self.user_agent or ""
        raw = "|".join([device_type or "web", self.platform or "", identity])
        return hashlib.sha256(raw.encode()).hexdigest()


class DeviceRegisterRequest(BaseModel):
    """Request to register a device for push notifications."""
    user_id: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1)
    device_type: str = Field(default="web", pattern=r"^(web|android|ios)$")
    device_info: DeviceInfo = Field(default_factory=DeviceInfo)


class DeviceRegisterResponse(BaseModel):
    """Response after registering a device."""
    success: bool
    token_id: str
    message: str


class DeviceUnregisterResponse(BaseModel):
    """Response after unregistering a device."""
    success: bool
    message: str


class DeviceCount(BaseModel):
    """Registered token counts (admin dashboard)."""
    total: int
    active: int
