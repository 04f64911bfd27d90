"""Token store - device push-token lifecycle.

Tokens are keyed by (user_id, device_id), where device_id is the fingerprint
derived from the reported device attributes. Registration is a single
insert-or-update statement so concurrent registrations from the same device
(duplicate tabs, app restarts) converge on one row without application locks.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update, delete, func, or_, and_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..errors import StorageError
from ..models.device_token import DeviceToken
from ..schemas.device import DeviceInfo
from ..utils.db_utils import new_id, retry_on_lock, storage_operation, utcnow

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Rows changed by one maintenance sweep."""
    deactivated: int = 0
    purged: int = 0


def _dialect_insert(session: AsyncSession):
    """INSERT construct with ON CONFLICT support for the session's database."""
    if session.bind.dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


class TokenStore:
    """Persistent table of push tokens per user device."""

    @storage_operation("upsert_token")
    async def upsert_token(
        self,
        session: AsyncSession,
        user_id: str,
        token: str,
        device_type: str = "web",
        device_info: Optional[DeviceInfo] = None,
    ) -> str:
        """Register a token for a user's device and return the row id.

        An existing row for the same device is updated in place (new token,
        refreshed timestamps, reactivated). When another of the user's rows
        already holds the token, that row is moved to this device instead.
        """
        device_info = device_info or DeviceInfo()
        device_id = device_info.fingerprint(device_type)
        now = utcnow()
        values = {
            "token": token,
            "device_type": device_type,
            "device_info": device_info.model_dump(exclude_none=True),
            "is_active": True,
            "updated_at": now,
            "last_used_at": now,
            "expires_at": now + timedelta(days=settings.token_expiry_days),
            "deactivated_at": None,
        }

        insert = _dialect_insert(session)
        stmt = insert(DeviceToken).values(
            id=new_id(),
            user_id=user_id,
            device_id=device_id,
            created_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DeviceToken.user_id, DeviceToken.device_id],
            set_=values,
        ).returning(DeviceToken.id)

        holder = await session.execute(
            select(DeviceToken.device_id).where(DeviceToken.user_id == user_id, DeviceToken.token == token)
        )
        holder_device = holder.scalar_one_or_none()

        if holder_device is not None and holder_device != device_id:
            # Token already held by another of this user's devices
            token_id = await self._reassign_token(session, user_id, token, device_id, values)
        else:
            try:
                result = await session.execute(stmt)
                token_id = result.scalar_one()
                await retry_on_lock(session.commit)
            except IntegrityError as e:
                # Lost a race with a concurrent registration of the same token
                await session.rollback()
                logger.info(f"Token conflict for user {user_id}, retrying as update: {e.orig}")
                token_id = await self._reassign_token(session, user_id, token, device_id, values)

        await self._release_from_other_users(session, user_id, token)
        logger.info(f"Token registered for user {user_id}: {token[:16]}... (device {device_id[:12]})")
        return token_id

    async def _reassign_token(
        self,
        session: AsyncSession,
        user_id: str,
        token: str,
        device_id: str,
        values: dict,
    ) -> str:
        """Point the row already holding (user_id, token) at this device."""
        try:
            # The device's previous row is superseded by the token's row
            await session.execute(
                delete(DeviceToken).where(
                    DeviceToken.user_id == user_id,
                    DeviceToken.device_id == device_id,
                    DeviceToken.token != token,
                ).execution_options(synchronize_session=False)
            )
            result = await session.execute(
                update(DeviceToken)
                .where(DeviceToken.user_id == user_id, DeviceToken.token == token)
                .values(device_id=device_id, **values)
                .execution_options(synchronize_session=False)
                .returning(DeviceToken.id)
            )
            token_id = result.scalar_one_or_none()
            if token_id is None:
                raise StorageError("upsert_token", RuntimeError("token row vanished during reconciliation"))
            await retry_on_lock(session.commit)
            return token_id
        except IntegrityError as e:
            await session.rollback()
            raise StorageError("upsert_token", e) from e

    async def _release_from_other_users(self, session: AsyncSession, user_id: str, token: str):
        """A token belongs to one browser; other users' rows for it are stale."""
        now = utcnow()
        result = await session.execute(
            update(DeviceToken)
            .where(
                DeviceToken.token == token,
                DeviceToken.user_id != user_id,
                DeviceToken.is_active.is_(True),
            )
            .values(is_active=False, deactivated_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info(f"Released token {token[:16]}... from {result.rowcount} other user(s)")
        await retry_on_lock(session.commit)

    @storage_operation("deactivate")
    async def deactivate(self, session: AsyncSession, token: str) -> int:
        """Mark a token inactive. Idempotent; returns the number of rows changed."""
        now = utcnow()
        result = await session.execute(
            update(DeviceToken)
            .where(DeviceToken.token == token, DeviceToken.is_active.is_(True))
            .values(is_active=False, deactivated_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await retry_on_lock(session.commit)
        if result.rowcount:
            logger.info(f"Token deactivated: {token[:16]}...")
        return result.rowcount or 0

    @storage_operation("revoke")
    async def revoke(self, session: AsyncSession, user_id: str, token: str) -> bool:
        """Owner-initiated deactivation. Returns False if the user has no such token."""
        result = await session.execute(
            select(DeviceToken).where(DeviceToken.user_id == user_id, DeviceToken.token == token)
        )
        device = result.scalar_one_or_none()
        if not device:
            return False

        if device.is_active:
            now = utcnow()
            device.is_active = False
            device.deactivated_at = now
            device.updated_at = now
            await retry_on_lock(session.commit)
            logger.info(f"Token revoked by user {user_id}: {token[:16]}...")
        return True

    @storage_operation("touch")
    async def touch(self, session: AsyncSession, token: str) -> bool:
        """Refresh last_used_at and push expiry forward after a successful delivery."""
        now = utcnow()
        result = await session.execute(
            update(DeviceToken)
            .where(DeviceToken.token == token, DeviceToken.is_active.is_(True))
            .values(last_used_at=now, expires_at=now + timedelta(days=settings.token_expiry_days))
            .execution_options(synchronize_session=False)
        )
        await retry_on_lock(session.commit)
        return bool(result.rowcount)

    @storage_operation("list_active_for_users")
    async def list_active_for_users(self, session: AsyncSession, user_ids: Iterable[str]) -> List[DeviceToken]:
        """Active tokens for the given users, in no particular order."""
        user_ids = list(user_ids)
        if not user_ids:
            return []
        result = await session.execute(
            select(DeviceToken).where(
                DeviceToken.user_id.in_(user_ids),
                DeviceToken.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    @storage_operation("owners_of")
    async def owners_of(self, session: AsyncSession, tokens: Iterable[str]) -> Dict[str, str]:
        """Map tokens to the user that owns them, preferring active rows."""
        tokens = list(tokens)
        if not tokens:
            return {}
        result = await session.execute(
            select(DeviceToken.token, DeviceToken.user_id, DeviceToken.is_active)
            .where(DeviceToken.token.in_(tokens))
        )
        owners: Dict[str, str] = {}
        active: set = set()
        for token, user_id, is_active in result.all():
            if token in active:
                continue
            owners[token] = user_id
            if is_active:
                active.add(token)
        return owners

    @storage_operation("sweep_expired")
    async def sweep_expired(self, session: AsyncSession, now: Optional[datetime] = None) -> SweepResult:
        """Deactivate tokens unused for the stale window, then purge long-inactive ones.

        Maintenance only; never called from the delivery path.
        """
        now = now or utcnow()
        stale_cutoff = now - timedelta(days=settings.token_stale_days)
        purge_cutoff = now - timedelta(days=settings.token_purge_days)

        deactivated = await session.execute(
            update(DeviceToken)
            .where(
                DeviceToken.is_active.is_(True),
                DeviceToken.last_used_at <= stale_cutoff,
            )
            .values(is_active=False, deactivated_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        purged = await session.execute(
            delete(DeviceToken).where(
                DeviceToken.is_active.is_(False),
                or_(
                    DeviceToken.deactivated_at <= purge_cutoff,
                    and_(
                        DeviceToken.deactivated_at.is_(None),
                        DeviceToken.updated_at <= purge_cutoff,
                    ),
                ),
            ).execution_options(synchronize_session=False)
        )
        await retry_on_lock(session.commit)

        sweep = SweepResult(deactivated=deactivated.rowcount or 0, purged=purged.rowcount or 0)
        logger.info(f"Token sweep: {sweep.deactivated} deactivated, {sweep.purged} purged")
        return sweep

    @storage_operation("count_tokens")
    async def count_tokens(self, session: AsyncSession) -> Dict[str, int]:
        """Total and active token counts."""
        total = (await session.execute(select(func.count(DeviceToken.id)))).scalar() or 0
        active = (await session.execute(
            select(func.count(DeviceToken.id)).where(DeviceToken.is_active.is_(True))
        )).scalar() or 0
        return {"total": total, "active": active}


# Global instance
token_store = TokenStore()
