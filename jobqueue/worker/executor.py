"""
Job executor.

Runs one claimed job and turns the handler's result into a persisted
transition: completed jobs are deleted, retried jobs get a later run_at,
failed jobs get failed_at/error. Every path releases the lock.
"""

import logging
import time
from datetime import timedelta

from jobqueue.config import get_settings
from jobqueue.constants import JobState, OutcomeStatus
from jobqueue.db.repository import JobRepository
from jobqueue.db.store import is_disconnect
from jobqueue.errors import (
    BadHandlerError,
    HandlerFaultError,
    RetryRequested,
    StoreUnavailableError,
)
from jobqueue.observability.metrics import get_metrics
from jobqueue.observability.tracing import job_span
from jobqueue.types.job import JobOutcome
from jobqueue.utils import utcnow
from jobqueue.worker.handlers import deserialize_handler

logger = logging.getLogger(__name__)


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


class JobExecutor:
    """
    Executes claimed jobs for one worker.

    Job-level problems (bad handler, handler fault, retry request) end up in
    the job row and never leave run(). A lost store connection is not the
    job's fault: the lock is released and StoreUnavailableError propagates.
    """

    def __init__(
        self,
        repo: JobRepository,
        worker_id: str,
        retry_delay_seconds: float | None = None,
    ):
        """
        Initialize the executor.

        Args:
            repo: The job repository.
            worker_id: Identity of the owning worker.
            retry_delay_seconds: Delay before a retried job becomes eligible.
        """
        settings = get_settings()

        self._repo = repo
        self.worker_id = worker_id
        self.retry_delay = timedelta(
            seconds=(
                retry_delay_seconds
                if retry_delay_seconds is not None
                else settings.worker_retry_delay_seconds
            )
        )
        self._metrics = get_metrics()

    async def run(self, job_id: int) -> bool:
        """
        Run a claimed job.

        Args:
            job_id: The job id. The caller must hold its lock.

        Returns:
            True if the job completed and was removed, False otherwise.

        Raises:
            StoreUnavailableError: If the store connection was lost.
        """
        try:
            return await self._run(job_id)
        except StoreUnavailableError:
            await self._release_after_outage(job_id)
            raise

    async def _run(self, job_id: int) -> bool:
        start_time = time.time()

        job = await self._repo.get_job(job_id)
        queue = job.queue if job else "unknown"

        try:
            handler = deserialize_handler(job.handler if job else None)
        except BadHandlerError as e:
            logger.warning(
                "Bad handler for job",
                extra={"job_id": job_id, "error": str(e)},
            )
            await self._repo.finish_with_error(
                job_id, f"bad handler for job::{job_id}: {e}"
            )
            self._record(queue, JobState.FAILED, start_time)
            return False

        logger.info(
            "Executing job",
            extra={
                "job_id": job_id,
                "job_type": handler.job_type,
                "worker_id": self.worker_id,
            },
        )

        try:
            with job_span(job_id, handler.job_type, queue, self.worker_id):
                outcome = await handler.perform()

        except RetryRequested as e:
            outcome = JobOutcome.retry(str(e) or None)

        except Exception as e:
            if is_disconnect(e):
                if isinstance(e, StoreUnavailableError):
                    raise
                raise StoreUnavailableError(_describe(e)) from e

            if isinstance(e, HandlerFaultError):
                fault = e
            else:
                fault = HandlerFaultError(job_id, _describe(e))
                fault.__cause__ = e
            logger.warning(
                "Handler raised exception",
                exc_info=fault,
                extra={"job_id": job_id, "error": fault.reason},
            )
            outcome = JobOutcome.failed(fault.reason)

        return await self._apply(job_id, queue, outcome, start_time)

    async def _apply(
        self,
        job_id: int,
        queue: str,
        outcome: JobOutcome | None,
        start_time: float,
    ) -> bool:
        status = outcome.status if outcome is not None else OutcomeStatus.COMPLETED

        if status == OutcomeStatus.RETRY:
            await self._repo.retry_later(job_id, utcnow() + self.retry_delay)
            self._record(queue, JobState.RETRY_SCHEDULED, start_time)
            return False

        if status == OutcomeStatus.FAILED:
            await self._repo.finish_with_error(job_id, outcome.error or "job failed")
            self._record(queue, JobState.FAILED, start_time)
            return False

        await self._repo.finish(job_id)
        self._record(queue, JobState.COMPLETED, start_time)
        return True

    async def _release_after_outage(self, job_id: int) -> None:
        logger.error(
            "Store unavailable while running job, releasing lock",
            extra={"job_id": job_id, "worker_id": self.worker_id},
        )
        try:
            await self._repo.release_lock(job_id)
        except StoreUnavailableError:
            logger.error(
                "Could not release lock, it stays until reclaimed",
                extra={"job_id": job_id},
            )

    def _record(self, queue: str, state: JobState, start_time: float) -> None:
        duration = time.time() - start_time
        self._metrics.record_job_finished(
            queue=queue,
            outcome=state.value,
            duration_seconds=duration,
        )
        logger.info(
            "Job finished",
            extra={
                "state": state.value,
                "queue": queue,
                "duration": f"{duration:.2f}s",
            },
        )
