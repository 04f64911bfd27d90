"""DeviceToken model - push gateway tokens registered per user device."""
from datetime import timedelta

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, Index, UniqueConstraint

from ..config import settings
from ..database import Base
from ..utils.db_utils import new_id, utcnow


def default_expiry():
    """Expiry for a freshly registered token."""
    return utcnow() + timedelta(days=settings.token_expiry_days)


class DeviceToken(Base):
    """Registered device/browser endpoint for push notifications."""

    __tablename__ = "device_tokens"
    __table_args__ = (
        UniqueConstraint("user_id", "token", name="uq_device_tokens_user_token"),
        UniqueConstraint("user_id", "device_id", name="uq_device_tokens_user_device"),
        Index("idx_device_tokens_active", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String, nullable=False, index=True)
    device_id = Column(String(64), nullable=False)  # Fingerprint from device_info
    device_type = Column(String(10), default="web")  # web, android, ios
    device_info = Column(JSON, default=dict)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_used_at = Column(DateTime, default=utcnow)
    expires_at = Column(DateTime, default=default_expiry)
    deactivated_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<DeviceToken {self.device_type} user={self.user_id} token={self.token[:16]}...>"
