"""
Queue inspection routes.
"""

from fastapi import APIRouter, Depends, Query

from jobqueue.api.routes.jobs import job_to_response
from jobqueue.db import JobStore, get_job_store
from jobqueue.db.repository import JobRepository
from jobqueue.observability.metrics import get_metrics
from jobqueue.types.api import JobResponse, QueueStatusResponse

router = APIRouter(prefix="/v1/queues", tags=["Queues"])


@router.get(
    "/{queue}/status",
    response_model=QueueStatusResponse,
    summary="Queue status",
    description="Total, locked, failed and outstanding job counts for a queue.",
)
async def queue_status(
    queue: str,
    store: JobStore = Depends(get_job_store),
) -> QueueStatusResponse:
    """
    Get job counts for a queue.

    Also refreshes the queue gauges exposed on /metrics.
    """
    status = await JobRepository(store).status(queue)
    get_metrics().update_queue_status(queue, status)
    return QueueStatusResponse(queue=queue, **status.model_dump())


@router.get(
    "/{queue}/failed",
    response_model=list[JobResponse],
    summary="Failed jobs",
    description="Permanently failed jobs in a queue, newest failure first.",
)
async def failed_jobs(
    queue: str,
    limit: int = Query(default=100, ge=1, le=1000),
    store: JobStore = Depends(get_job_store),
) -> list[JobResponse]:
    """List failed jobs for a queue."""
    jobs = await JobRepository(store).list_failed(queue, limit=limit)
    return [job_to_response(job) for job in jobs]
