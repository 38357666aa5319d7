"""
Job management routes.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from jobqueue.db import JobStore, get_job_store
from jobqueue.db.repository import JobRepository
from jobqueue.observability.metrics import get_metrics
from jobqueue.types.api import (
    BulkEnqueueRequest,
    BulkEnqueueResponse,
    EnqueueJobRequest,
    EnqueueJobResponse,
    JobResponse,
    RetryJobResponse,
)
from jobqueue.types.job import JobRecord
from jobqueue.worker.handlers import build_handler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/jobs", tags=["Jobs"])


def job_to_response(job: JobRecord) -> JobResponse:
    """Convert a JobRecord to a JobResponse."""
    return JobResponse(**job.model_dump())


@router.post(
    "",
    response_model=EnqueueJobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enqueue a job",
    description="Add a job to a queue. The job type must be a registered handler.",
)
async def enqueue_job(
    request: EnqueueJobRequest,
    store: JobStore = Depends(get_job_store),
) -> EnqueueJobResponse:
    """
    Enqueue a single job.

    Args:
        request: Job enqueue request.
        store: The job store.

    Returns:
        EnqueueJobResponse confirming the insert.

    Raises:
        HTTPException: If the store inserted nothing.
    """
    handler = build_handler(request.job_type, request.data)
    repo = JobRepository(store)

    if not await repo.enqueue(handler, queue=request.queue, run_at=request.run_at):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to enqueue job",
        )

    get_metrics().record_jobs_enqueued(request.queue)

    return EnqueueJobResponse(queue=request.queue, job_type=request.job_type)


@router.post(
    "/bulk",
    response_model=BulkEnqueueResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enqueue many jobs",
    description="Add many jobs to a queue in one insert. A partial insert is reported, not rejected.",
)
async def bulk_enqueue_jobs(
    request: BulkEnqueueRequest,
    store: JobStore = Depends(get_job_store),
) -> BulkEnqueueResponse:
    """
    Enqueue several jobs at once.

    Args:
        request: Bulk enqueue request.
        store: The job store.

    Returns:
        BulkEnqueueResponse with requested and inserted counts.

    Raises:
        HTTPException: If the store inserted nothing.
    """
    handlers = [build_handler(spec.job_type, spec.data) for spec in request.jobs]
    repo = JobRepository(store)

    result = await repo.bulk_enqueue(handlers, queue=request.queue, run_at=request.run_at)

    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to enqueue jobs",
        )

    get_metrics().record_jobs_enqueued(request.queue, result.inserted)

    return BulkEnqueueResponse(
        queue=request.queue,
        requested=result.requested,
        inserted=result.inserted,
        partial=result.partial,
        message="Some jobs were not enqueued" if result.partial else "Jobs enqueued",
    )


@router.get(
    "/{job_id}",
    response_model=JobResponse,
    summary="Get job details",
    description="Get detailed information about a specific job.",
)
async def get_job(
    job_id: int,
    store: JobStore = Depends(get_job_store),
) -> JobResponse:
    """
    Get job details by ID.

    Completed jobs are deleted, so they are reported as not found.

    Args:
        job_id: The job id.
        store: The job store.

    Returns:
        JobResponse with full job details.

    Raises:
        HTTPException: If job not found.
    """
    job = await JobRepository(store).get_job(job_id)

    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        )

    return job_to_response(job)


@router.post(
    "/{job_id}/retry",
    response_model=RetryJobResponse,
    summary="Retry a failed job",
    description="Clear the failure on a job so workers pick it up again.",
)
async def retry_job(
    job_id: int,
    store: JobStore = Depends(get_job_store),
) -> RetryJobResponse:
    """
    Re-queue a failed job.

    Args:
        job_id: The job id.
        store: The job store.

    Returns:
        RetryJobResponse confirming the retry.

    Raises:
        HTTPException: If job not found or not failed.
    """
    repo = JobRepository(store)

    job = await repo.get_job(job_id)

    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        )

    if not job.is_failed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Job has not failed",
        )

    if not await repo.retry_failed(job_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Job changed while retrying",
        )

    return RetryJobResponse(id=job_id)
