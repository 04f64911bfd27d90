"""Notification history - append-only record of delivery attempts."""
import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.notification_history import NotificationHistory
from ..utils.db_utils import retry_on_lock, storage_operation, utcnow

logger = logging.getLogger(__name__)


class HistoryStore:
    """Writes one row per push attempt; rows are never updated."""

    @storage_operation("record_history")
    async def record(
        self,
        session: AsyncSession,
        *,
        user_id: Optional[str],
        title: str,
        body: str,
        notification_type: str,
        token: str,
        status: str,
        related_id: Optional[str] = None,
        data: Optional[dict] = None,
        error_message: Optional[str] = None,
    ) -> NotificationHistory:
        """Append a history row and commit it."""
        entry = NotificationHistory(
            user_id=user_id,
            title=title,
            body=body,
            data=data or {},
            notification_type=notification_type,
            related_id=related_id,
            fcm_token=token,
            status=status,
            error_message=error_message,
        )
        session.add(entry)
        await retry_on_lock(session.commit)
        return entry

    @storage_operation("history_for_user")
    async def recent_for_user(self, session: AsyncSession, user_id: str, limit: int = 50) -> List[NotificationHistory]:
        """Most recent attempts for a user, newest first."""
        result = await session.execute(
            select(NotificationHistory)
            .where(NotificationHistory.user_id == user_id)
            .order_by(NotificationHistory.sent_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @storage_operation("history_stats")
    async def stats(self, session: AsyncSession, hours: int = 24) -> dict:
        """Sent/failed counts over the last `hours` hours."""
        cutoff = utcnow() - timedelta(hours=hours)
        result = await session.execute(
            select(NotificationHistory.status, func.count(NotificationHistory.id))
            .where(NotificationHistory.sent_at >= cutoff)
            .group_by(NotificationHistory.status)
        )
        counts = {status: count for status, count in result.all()}
        sent = counts.get("sent", 0)
        failed = counts.get("failed", 0)
        total = sent + failed
        return {
            "sent": sent,
            "failed": failed,
            "delivery_rate": round(sent / total, 4) if total else 0.0,
        }


# Global instance
history_store = HistoryStore()
