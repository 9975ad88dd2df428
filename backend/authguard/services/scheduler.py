"""
Scheduler service for background maintenance jobs.

Uses APScheduler to purge expired rows from the attempt log on a fixed
interval. With Redis configured, a distributed lock ensures only one worker
runs each cleanup.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authguard.core.config import settings as app_settings
from authguard.core.redis import get_redis, redis_enabled
from authguard.db.session import async_session_maker
from authguard.services.rate_limit import cleanup_old_attempts, max_window_minutes

logger = logging.getLogger(__name__)

CLEANUP_JOB_ID = "attempt_log_cleanup"
CLEANUP_LOCK_NAME = "scheduler:attempt_log_cleanup"
CLEANUP_LOCK_TIMEOUT = 300


class SchedulerService:
    """Service for managing scheduled background jobs."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        interval_minutes: int | None = None,
    ):
        self._session_factory = session_factory or async_session_maker
        self._interval_minutes = interval_minutes or app_settings.CLEANUP_INTERVAL_MINUTES
        self.scheduler = AsyncIOScheduler()

    def start(self):
        """Start the scheduler and register the cleanup job."""
        if self.scheduler.running:
            return
        self.scheduler.add_job(
            self.run_cleanup,
            trigger=IntervalTrigger(minutes=self._interval_minutes),
            id=CLEANUP_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info("Scheduler started (attempt log cleanup every %dm)", self._interval_minutes)

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    async def run_cleanup(self):
        """Entry point for the cleanup job."""
        if redis_enabled():
            await self._run_with_lock(CLEANUP_LOCK_NAME, CLEANUP_LOCK_TIMEOUT, self._execute_cleanup)
        else:
            await self._execute_cleanup()

    async def _run_with_lock(self, lock_name: str, timeout: int, job_func):
        """
        Execute a job function with distributed locking.

        Only one worker will execute the job; others will skip.

        Args:
            lock_name: Unique name for the lock
            timeout: Lock timeout in seconds
            job_func: Async function to execute if lock acquired
        """
        try:
            redis = await get_redis()
            lock = redis.lock(lock_name, timeout=timeout, blocking=False)
            acquired = await lock.acquire(blocking=False)
        except Exception as e:
            logger.warning("Redis unavailable, running job without lock: %s", e)
            await job_func()
            return

        if not acquired:
            logger.debug("Lock %s held by another worker, skipping", lock_name)
            return

        try:
            await job_func()
        finally:
            try:
                await lock.release()
            except Exception as e:
                logger.debug("Lock %s release failed (likely expired): %s", lock_name, e)

    async def _execute_cleanup(self) -> int:
        """Delete attempt records older than the largest rate limit window."""
        try:
            async with self._session_factory() as session:
                deleted = await cleanup_old_attempts(session, older_than_minutes=max_window_minutes())
        except Exception:
            logger.exception("Attempt log cleanup failed")
            return 0

        if deleted:
            logger.info("Attempt log cleanup removed %d expired records", deleted)
        return deleted


scheduler_service = SchedulerService()
