"""
Worker process for executing jobs.

The worker polls one queue, claims a job through the conditional-update lock,
runs it, and loops. It sleeps when nothing can be claimed and stops on
shutdown request, after max_jobs, or when the store becomes unavailable.
"""

import asyncio
import contextlib
import logging
import os
import signal

from jobqueue.config import get_settings
from jobqueue.constants import DEFAULT_CANDIDATE_BATCH_SIZE
from jobqueue.db import close_db, get_job_store, init_db
from jobqueue.db.repository import JobRepository
from jobqueue.db.store import JobStore
from jobqueue.errors import StoreUnavailableError
from jobqueue.observability.logging import bind_context, setup_logging, unbind_context
from jobqueue.observability.metrics import get_metrics
from jobqueue.worker.executor import JobExecutor

logger = logging.getLogger(__name__)


def default_worker_id() -> str:
    """Identity for this process: hostname plus PID."""
    return f"host::{os.uname().nodename} pid::{os.getpid()}"


class Worker:
    """
    Job worker that polls for and executes jobs.

    Features:
    - Random candidate selection to spread workers over the queue
    - Lock acquisition with a conditional UPDATE, no coordination between workers
    - Cooperative shutdown checked once per iteration, releasing held locks
    - Stops on store outage instead of retrying against a broken connection
    """

    def __init__(
        self,
        store: JobStore,
        queue: str | None = None,
        max_jobs: int | None = None,
        sleep_interval: float | None = None,
        worker_id: str | None = None,
        batch_size: int | None = None,
        retry_delay_seconds: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            store: The job store.
            queue: Queue to service.
            max_jobs: Stop after this many jobs; 0 runs until stopped.
            sleep_interval: Seconds to sleep when no job could be claimed.
            worker_id: Unique worker identifier. Defaults to hostname + PID.
            batch_size: Number of candidates fetched per poll.
            retry_delay_seconds: Delay before a retried job is eligible again.
        """
        settings = get_settings()

        self.worker_id = worker_id or settings.worker_id or default_worker_id()
        self.queue = queue or settings.worker_queue
        self.max_jobs = max_jobs if max_jobs is not None else settings.worker_max_jobs
        self.sleep_interval = (
            sleep_interval if sleep_interval is not None else settings.worker_sleep_seconds
        )
        self.batch_size = batch_size or settings.worker_batch_size or DEFAULT_CANDIDATE_BATCH_SIZE

        self._repo = JobRepository(store)
        self._executor = JobExecutor(
            self._repo,
            self.worker_id,
            retry_delay_seconds=retry_delay_seconds,
        )
        self._shutdown = asyncio.Event()
        self._metrics = get_metrics()
        self.processed = 0

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    def request_shutdown(self) -> None:
        """Ask the worker to stop before its next iteration."""
        if not self._shutdown.is_set():
            logger.info("Worker shutdown requested", extra={"worker_id": self.worker_id})
        self._shutdown.set()

    async def start(self) -> int:
        """
        Run the polling loop.

        Returns:
            Number of jobs processed.

        Raises:
            StoreUnavailableError: If the store connection was lost.
        """
        bind_context(worker_id=self.worker_id)
        logger.info(
            "Starting worker",
            extra={"worker_id": self.worker_id, "queue": self.queue},
        )

        self.processed = 0
        try:
            while self.max_jobs == 0 or self.processed < self.max_jobs:
                if self._shutdown.is_set():
                    break

                job_id = await self.reserve_job()

                if job_id is None:
                    logger.info(
                        "Failed to get a job, queue may be empty",
                        extra={"queue": self.queue},
                    )
                    await self._idle()
                    continue

                await self._executor.run(job_id)
                self.processed += 1

            if self._shutdown.is_set():
                await self._repo.release_locks(self.worker_id)

        except StoreUnavailableError as e:
            logger.error(
                "Job store unavailable, stopping worker",
                extra={"worker_id": self.worker_id, "error": str(e)},
            )
            raise
        except Exception as e:
            logger.exception(
                f"Unhandled exception in worker loop: {e}",
                extra={"worker_id": self.worker_id},
            )
            raise
        finally:
            logger.info(
                f"Worker shutting down after running {self.processed} jobs",
                extra={"worker_id": self.worker_id},
            )
            unbind_context("worker_id")

        return self.processed

    async def reserve_job(self) -> int | None:
        """
        Claim one eligible job.

        Returns:
            The claimed job id, or None if every candidate was taken.
        """
        candidates = await self._repo.find_candidates(
            queue=self.queue,
            worker_id=self.worker_id,
            limit=self.batch_size,
        )

        for job_id in candidates:
            acquired = await self._repo.acquire_lock(job_id, self.worker_id)
            self._metrics.record_lock_attempt(self.worker_id, acquired)
            if acquired:
                return job_id

        return None

    async def _idle(self) -> None:
        # Wake early on shutdown; the flag is still only acted on at the loop head
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._shutdown.wait(), timeout=self.sleep_interval)


async def run_async(
    queue: str | None = None,
    max_jobs: int | None = None,
    sleep_interval: float | None = None,
    worker_id: str | None = None,
) -> int:
    """Run the worker asynchronously."""
    setup_logging("worker")
    await init_db()

    worker = Worker(
        get_job_store(),
        queue=queue,
        max_jobs=max_jobs,
        sleep_interval=sleep_interval,
        worker_id=worker_id,
    )

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, worker.request_shutdown)

    try:
        return await worker.start()
    finally:
        await close_db()


def run() -> None:
    """Run the worker."""
    try:
        asyncio.run(run_async())
    except StoreUnavailableError:
        raise SystemExit(1)


if __name__ == "__main__":
    run()
