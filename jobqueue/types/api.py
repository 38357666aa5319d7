"""
API request and response type definitions.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from jobqueue.constants import DEFAULT_QUEUE


class EnqueueJobRequest(BaseModel):
    """Request body for enqueueing a single job."""

    job_type: str = Field(..., description="Registered handler type")
    data: dict[str, Any] = Field(default_factory=dict, description="Handler arguments")
    queue: str = Field(default=DEFAULT_QUEUE, min_length=1, max_length=255)
    run_at: datetime | None = Field(
        default=None, description="Do not run the job before this time"
    )


class HandlerSpec(BaseModel):
    """One handler inside a bulk request."""

    job_type: str
    data: dict[str, Any] = Field(default_factory=dict)


class BulkEnqueueRequest(BaseModel):
    """Request body for enqueueing many jobs in one insert."""

    jobs: list[HandlerSpec] = Field(..., min_length=1, max_length=1000)
    queue: str = Field(default=DEFAULT_QUEUE, min_length=1, max_length=255)
    run_at: datetime | None = None


class EnqueueJobResponse(BaseModel):
    """Response body after enqueueing a job."""

    queue: str
    job_type: str
    message: str = "Job enqueued"


class BulkEnqueueResponse(BaseModel):
    """Response body after a bulk enqueue."""

    queue: str
    requested: int
    inserted: int
    partial: bool
    message: str


class JobResponse(BaseModel):
    """Full job details response."""

    id: int
    handler: str
    queue: str
    run_at: datetime | None
    locked_at: datetime | None
    locked_by: str | None
    failed_at: datetime | None
    error: str | None
    created_at: datetime


class QueueStatusResponse(BaseModel):
    """Aggregate counts for a queue."""

    queue: str
    total: int
    locked: int
    failed: int
    outstanding: int


class RetryJobResponse(BaseModel):
    """Response body after re-queueing a failed job."""

    id: int
    message: str = "Job queued for retry"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: str | None = None
