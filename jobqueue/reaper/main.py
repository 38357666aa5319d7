"""
Stale lock reaper.

A worker killed mid-job never releases its lock, and no other worker will
claim a job locked by someone else. The reaper runs periodically and clears
locks older than the lock timeout so the job becomes eligible again.
"""

import asyncio
import logging
import signal
from datetime import timedelta

from jobqueue.config import get_settings
from jobqueue.db import close_db, get_job_store, init_db
from jobqueue.db.repository import JobRepository
from jobqueue.db.store import JobStore
from jobqueue.observability.logging import setup_logging
from jobqueue.observability.metrics import get_metrics
from jobqueue.utils import utcnow

logger = logging.getLogger(__name__)


class Reaper:
    """
    Lock reaper that recovers jobs held by dead workers.

    Runs periodically to:
    1. Find jobs whose locked_at is older than the lock timeout
    2. Clear locked_at/locked_by so any worker can claim them
    3. Record metrics for monitoring
    """

    def __init__(
        self,
        store: JobStore,
        interval_seconds: int | None = None,
        lock_timeout_seconds: int | None = None,
    ):
        """
        Initialize the reaper.

        Args:
            store: The job store.
            interval_seconds: Seconds between reaper runs.
            lock_timeout_seconds: Age after which a lock counts as stale.
        """
        settings = get_settings()
        self.interval = interval_seconds or settings.reaper_interval_seconds
        self.lock_timeout = timedelta(
            seconds=lock_timeout_seconds or settings.worker_lock_timeout_seconds
        )
        self._repo = JobRepository(store)
        self._running = False
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Start the reaper loop."""
        logger.info(
            f"Reaper starting with interval {self.interval}s",
            extra={"lock_timeout": str(self.lock_timeout)},
        )
        self._running = True

        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(f"Error in reaper loop: {e}")

            await asyncio.sleep(self.interval)

        logger.info("Reaper stopped")

    async def stop(self) -> None:
        """Stop the reaper."""
        logger.info("Reaper stopping")
        self._running = False

    async def run_once(self) -> int:
        """
        Release stale locks once.

        Returns:
            Number of jobs recovered.
        """
        count = await self._repo.release_stale_locks(utcnow() - self.lock_timeout)

        if count > 0:
            logger.info(f"Recovered {count} jobs with stale locks")
            self._metrics.record_stale_locks_released(count)

        return count


async def run_async(
    interval_seconds: int | None = None,
    lock_timeout_seconds: int | None = None,
) -> None:
    """Run the reaper asynchronously."""
    setup_logging("reaper")
    await init_db()

    reaper = Reaper(
        get_job_store(),
        interval_seconds=interval_seconds,
        lock_timeout_seconds=lock_timeout_seconds,
    )

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(reaper.stop())
        )

    try:
        await reaper.start()
    finally:
        await close_db()


def run() -> None:
    """Run the reaper."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
