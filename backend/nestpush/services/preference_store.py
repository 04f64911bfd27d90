"""Preference store - per-user opt-in flags gating push delivery."""
import logging
from typing import Iterable, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.notification_preference import NotificationPreference, CATEGORY_FLAGS
from ..schemas.preference import PreferenceUpdate
from ..utils.db_utils import retry_on_lock, storage_operation

logger = logging.getLogger(__name__)

# Payload "type"/"category" values -> preference category
CATEGORY_ALIASES = {
    "task": "task",
    "admin-task": "task",
    "admin_task": "task",
    "new_task": "task",
    "announcement": "announcement",
    "new_announcement": "announcement",
    "reminder": "reminder",
    "task_reminder": "reminder",
    "email": "email",
}


def normalize_category(value: Optional[str]) -> str:
    """Map a payload type to a notification category; unknown types are "system"."""
    if not value:
        return "system"
    return CATEGORY_ALIASES.get(str(value).strip().lower(), "system")


def flag_allows(preference: Optional[NotificationPreference], category: str) -> bool:
    """Fail-open check of a single preference row."""
    if preference is None:
        return True
    column = CATEGORY_FLAGS.get(category)
    if column is None:
        return True
    flag = getattr(preference, column)
    return flag is None or bool(flag)


class PreferenceStore:
    """Read access to notification preferences (plus the user-facing update)."""

    @storage_operation("is_allowed")
    async def is_allowed(self, session: AsyncSession, user_id: str, category: str) -> bool:
        """Whether user_id accepts notifications of this category."""
        preference = await self.get(session, user_id)
        return flag_allows(preference, category)

    @storage_operation("filter_allowed")
    async def filter_allowed(self, session: AsyncSession, user_ids: Iterable[str], category: str) -> Set[str]:
        """Subset of user_ids that accept this category, in one query."""
        user_ids = set(user_ids)
        if not user_ids or category not in CATEGORY_FLAGS:
            return user_ids

        result = await session.execute(
            select(NotificationPreference).where(NotificationPreference.user_id.in_(user_ids))
        )
        preferences = {p.user_id: p for p in result.scalars().all()}
        allowed = {uid for uid in user_ids if flag_allows(preferences.get(uid), category)}
        if len(allowed) < len(user_ids):
            logger.debug(f"{len(user_ids) - len(allowed)} user(s) opted out of {category} notifications")
        return allowed

    @storage_operation("get_preferences")
    async def get(self, session: AsyncSession, user_id: str) -> Optional[NotificationPreference]:
        """The stored preference row, if any."""
        result = await session.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        )
        return result.scalar_one_or_none()

    @storage_operation("update_preferences")
    async def update(self, session: AsyncSession, user_id: str, changes: PreferenceUpdate) -> NotificationPreference:
        """Apply a partial update, creating the row when the user has none."""
        preference = await self.get(session, user_id)
        if preference is None:
            preference = NotificationPreference(user_id=user_id)
            session.add(preference)

        for field, value in changes.model_dump(exclude_unset=True).items():
            setattr(preference, field, value)

        await retry_on_lock(session.commit)
        await session.refresh(preference)
        logger.info(f"Notification preferences updated for user {user_id}")
        return preference


# Global instance
preference_store = PreferenceStore()
