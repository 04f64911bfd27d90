"""Scheduler service - periodic token maintenance.

The token sweep is never run inline with delivery; it runs here on an
interval in its own session.
"""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..config import settings
from ..errors import StorageError
from .token_store import token_store, SweepResult

logger = logging.getLogger(__name__)


class SchedulerService:
    """Service for scheduling background maintenance jobs."""

    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False
        self._session_factory: Optional[async_sessionmaker] = None

    def start(self, session_factory: async_sessionmaker):
        """Start the scheduler."""
        if self._running:
            return

        self._session_factory = session_factory
        self.scheduler = AsyncIOScheduler()

        self.scheduler.add_job(
            self.sweep_tokens,
            trigger=IntervalTrigger(hours=settings.token_sweep_interval_hours),
            id="sweep_tokens",
            replace_existing=True,
            max_instances=1,
        )

        self.scheduler.start()
        self._running = True
        logger.info(f"Scheduler started (token sweep every {settings.token_sweep_interval_hours}h)")

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    async def sweep_tokens(self) -> Optional[SweepResult]:
        """Deactivate stale tokens and purge long-inactive ones."""
        if not self._session_factory:
            return None
        try:
            async with self._session_factory() as session:
                return await token_store.sweep_expired(session)
        except StorageError as e:
            logger.error(f"Token sweep failed: {e}")
            return None


# Global instance
scheduler_service = SchedulerService()
