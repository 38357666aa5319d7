"""
Job repository for database operations.
Implements the lock protocol and the job record transitions.
"""

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, func, insert, or_, select, update

from jobqueue.constants import DEFAULT_CANDIDATE_BATCH_SIZE, DEFAULT_QUEUE
from jobqueue.db.models import Job
from jobqueue.db.store import JobStore
from jobqueue.types.job import BulkEnqueueResult, JobRecord, QueueStatus
from jobqueue.utils import as_utc, utcnow
from jobqueue.worker.handlers import JobHandler, serialize_handler

logger = logging.getLogger(__name__)


class JobRepository:
    """
    Repository for job database operations.

    Implements atomic operations for:
    - Lock acquisition with a conditional UPDATE (compare-and-set)
    - Lock release, per job and per worker
    - Completion, retry and failure transitions
    - Enqueue and queue statistics
    """

    def __init__(self, store: JobStore):
        """
        Initialize the repository with a job store.

        Args:
            store: The job store.
        """
        self._store = store

    # ------------------------------------------------------------------
    # Lock management
    # ------------------------------------------------------------------

    async def find_candidates(
        self,
        queue: str,
        worker_id: str,
        limit: int = DEFAULT_CANDIDATE_BATCH_SIZE,
    ) -> list[int]:
        """
        Select ids of jobs this worker may claim.

        A job locked by the same worker is still a candidate so a restarted
        worker with the same identity picks its jobs back up. Ordering is
        random so workers racing on the same queue spread over different rows.

        Args:
            queue: The queue to poll.
            worker_id: The polling worker's identity.
            limit: Maximum number of candidates.

        Returns:
            Candidate job ids in random order.
        """
        now = utcnow()
        stmt = (
            select(Job.id)
            .where(
                Job.queue == queue,
                or_(Job.run_at.is_(None), Job.run_at <= now),
                or_(Job.locked_at.is_(None), Job.locked_by == worker_id),
                Job.failed_at.is_(None),
            )
            .order_by(func.random())
            .limit(limit)
        )
        rows = await self._store.execute_query(stmt)
        return [row.id for row in rows]

    async def acquire_lock(self, job_id: int, worker_id: str) -> bool:
        """
        Claim a job for a worker.

        The WHERE clause re-checks the lock state inside the UPDATE, so of
        several workers racing for the same row exactly one sees a row
        affected. Re-claiming a job this worker already holds succeeds.

        Args:
            job_id: The job id.
            worker_id: The claiming worker's identity.

        Returns:
            True if the lock is now held by worker_id.
        """
        logger.info(
            "Attempting to acquire lock",
            extra={"job_id": job_id, "worker_id": worker_id},
        )

        stmt = (
            update(Job)
            .where(
                Job.id == job_id,
                or_(Job.locked_at.is_(None), Job.locked_by == worker_id),
                Job.failed_at.is_(None),
            )
            .values(locked_at=utcnow(), locked_by=worker_id)
        )
        affected = await self._store.execute_update(stmt)

        if affected != 1:
            logger.info(
                "Failed to acquire lock",
                extra={"job_id": job_id, "worker_id": worker_id},
            )
            return False

        return True

    async def release_lock(self, job_id: int) -> None:
        """
        Release the lock on a job, whoever holds it.

        Args:
            job_id: The job id.
        """
        stmt = (
            update(Job)
            .where(Job.id == job_id)
            .values(locked_at=None, locked_by=None)
        )
        await self._store.execute_update(stmt)

    async def release_locks(self, worker_id: str) -> int:
        """
        Release every lock held by a worker.

        Args:
            worker_id: The worker identity.

        Returns:
            Number of jobs unlocked.
        """
        stmt = (
            update(Job)
            .where(Job.locked_by == worker_id)
            .values(locked_at=None, locked_by=None)
        )
        count = await self._store.execute_update(stmt)

        if count > 0:
            logger.info(
                f"Released {count} locks",
                extra={"worker_id": worker_id},
            )

        return count

    async def release_stale_locks(self, older_than: datetime) -> int:
        """
        Release locks taken before a cutoff.

        Used by the reaper to recover jobs from workers that died without
        releasing their locks.

        Args:
            older_than: Locks with locked_at before this are cleared.

        Returns:
            Number of jobs unlocked.
        """
        stmt = (
            update(Job)
            .where(
                Job.locked_at.is_not(None),
                Job.locked_at < as_utc(older_than),
            )
            .values(locked_at=None, locked_by=None)
        )
        count = await self._store.execute_update(stmt)

        if count > 0:
            logger.info(f"Released {count} stale locks")

        return count

    # ------------------------------------------------------------------
    # Job transitions
    # ------------------------------------------------------------------

    async def get_job(self, job_id: int) -> JobRecord | None:
        """
        Get a job by ID.

        Args:
            job_id: The job id.

        Returns:
            The JobRecord or None if not found.
        """
        stmt = select(Job.__table__).where(Job.id == job_id)
        rows = await self._store.execute_query(stmt)
        if not rows:
            return None
        return JobRecord.model_validate(rows[0], from_attributes=True)

    async def finish(self, job_id: int) -> None:
        """
        Remove a successfully completed job.

        Args:
            job_id: The job id.
        """
        await self._store.execute_update(delete(Job).where(Job.id == job_id))
        logger.info("Completed job", extra={"job_id": job_id})

    async def finish_with_error(self, job_id: int, error: str) -> None:
        """
        Mark a job as permanently failed and release its lock.

        Args:
            job_id: The job id.
            error: Failure description.
        """
        stmt = (
            update(Job)
            .where(Job.id == job_id)
            .values(
                failed_at=utcnow(),
                error=error,
                locked_at=None,
                locked_by=None,
            )
        )
        await self._store.execute_update(stmt)
        logger.warning(
            "Failure in job",
            extra={"job_id": job_id, "error": error},
        )

    async def retry_later(self, job_id: int, run_at: datetime) -> None:
        """
        Reschedule a job and release its lock.

        Args:
            job_id: The job id.
            run_at: Earliest time the job may run again.
        """
        stmt = (
            update(Job)
            .where(Job.id == job_id)
            .values(run_at=as_utc(run_at), locked_at=None, locked_by=None)
        )
        await self._store.execute_update(stmt)
        logger.info(
            "Job scheduled for retry",
            extra={"job_id": job_id, "run_at": run_at.isoformat()},
        )

    async def retry_failed(self, job_id: int) -> bool:
        """
        Make a failed job eligible again.

        Args:
            job_id: The job id.

        Returns:
            True if the job existed and was failed.
        """
        stmt = (
            update(Job)
            .where(Job.id == job_id, Job.failed_at.is_not(None))
            .values(failed_at=None, error=None, run_at=None)
        )
        retried = await self._store.execute_update(stmt) == 1

        if retried:
            logger.info("Failed job queued for retry", extra={"job_id": job_id})

        return retried

    async def list_failed(
        self,
        queue: str = DEFAULT_QUEUE,
        limit: int = 100,
    ) -> list[JobRecord]:
        """
        List permanently failed jobs, newest failure first.

        Args:
            queue: The queue.
            limit: Maximum number of jobs to return.

        Returns:
            The failed jobs.
        """
        stmt = (
            select(Job.__table__)
            .where(Job.queue == queue, Job.failed_at.is_not(None))
            .order_by(Job.failed_at.desc(), Job.id.desc())
            .limit(limit)
        )
        rows = await self._store.execute_query(stmt)
        return [JobRecord.model_validate(row, from_attributes=True) for row in rows]

    # ------------------------------------------------------------------
    # Producer operations
    # ------------------------------------------------------------------

    async def enqueue(
        self,
        handler: JobHandler,
        queue: str = DEFAULT_QUEUE,
        run_at: datetime | None = None,
    ) -> bool:
        """
        Add one job to a queue.

        Args:
            handler: The handler to run.
            queue: Target queue.
            run_at: Optional earliest run time.

        Returns:
            True if the row was inserted.
        """
        stmt = insert(Job).values(
            handler=serialize_handler(handler),
            queue=str(queue),
            run_at=as_utc(run_at) if run_at is not None else None,
            created_at=utcnow(),
        )
        affected = await self._store.execute_update(stmt)

        if affected < 1:
            logger.error("Failed to enqueue new job", extra={"queue": queue})
            return False

        logger.info(
            "Enqueued job",
            extra={"queue": queue, "job_type": handler.job_type},
        )
        return True

    async def bulk_enqueue(
        self,
        handlers: Sequence[JobHandler],
        queue: str = DEFAULT_QUEUE,
        run_at: datetime | None = None,
    ) -> BulkEnqueueResult:
        """
        Add many jobs to a queue with a single multi-row INSERT.

        Args:
            handlers: The handlers to run.
            queue: Target queue.
            run_at: Optional earliest run time shared by all jobs.

        Returns:
            BulkEnqueueResult with requested and inserted counts.

        Raises:
            ValueError: If handlers is empty.
        """
        if not handlers:
            raise ValueError("No handlers to enqueue")

        now = utcnow()
        if run_at is not None:
            run_at = as_utc(run_at)
        rows = [
            {
                "handler": serialize_handler(handler),
                "queue": str(queue),
                "run_at": run_at,
                "created_at": now,
            }
            for handler in handlers
        ]
        affected = await self._store.execute_update(insert(Job).values(rows))
        result = BulkEnqueueResult(requested=len(rows), inserted=max(affected, 0))

        if not result.ok:
            logger.error("Failed to enqueue new jobs", extra={"queue": queue})
        elif result.partial:
            logger.warning(
                "Failed to enqueue some new jobs",
                extra={
                    "queue": queue,
                    "requested": result.requested,
                    "inserted": result.inserted,
                },
            )
        else:
            logger.info(
                f"Enqueued {result.inserted} jobs",
                extra={"queue": queue},
            )

        return result

    async def status(self, queue: str = DEFAULT_QUEUE) -> QueueStatus:
        """
        Get job counts for a queue.

        Args:
            queue: The queue.

        Returns:
            QueueStatus with total, locked, failed and outstanding counts.
        """
        stmt = select(
            func.count().label("total"),
            func.count(Job.failed_at).label("failed"),
            func.count(Job.locked_at).label("locked"),
        ).where(Job.queue == queue)
        row = (await self._store.execute_query(stmt))[0]

        total = row.total or 0
        failed = row.failed or 0
        locked = row.locked or 0

        return QueueStatus(
            total=total,
            locked=locked,
            failed=failed,
            outstanding=total - locked - failed,
        )
