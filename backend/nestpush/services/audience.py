"""Audience resolver - who should hear about a domain event."""
import logging
from typing import Set

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from ..utils.db_utils import storage_operation
from .events import DomainEvent

logger = logging.getLogger(__name__)


class AudienceResolver:
    """Resolve recipients by scope: section, then department, then everyone."""

    @storage_operation("resolve_audience")
    async def resolve(self, session: AsyncSession, event: DomainEvent) -> Set[str]:
        """Active users targeted by the event. An empty set is a valid result.

        Section scope excludes the event's creator and the section's admins,
        so the author of a section task never notifies themselves.
        """
        query = select(User.id).where(User.is_active.is_(True))

        if event.section_id:
            query = query.where(
                User.section_id == event.section_id,
                or_(User.role.is_(None), User.role != "section_admin"),
            )
            if event.created_by:
                query = query.where(User.id != event.created_by)
            scope = f"section {event.section_id}"
        elif event.department_id:
            query = query.where(User.department_id == event.department_id)
            scope = f"department {event.department_id}"
        else:
            scope = "all users"

        result = await session.execute(query)
        recipients = set(result.scalars().all())
        logger.info(f"Resolved {len(recipients)} recipient(s) for {event.category} {event.entity_id} ({scope})")
        return recipients


# Global instance
audience_resolver = AudienceResolver()
