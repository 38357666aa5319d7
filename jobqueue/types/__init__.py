"""
Type definitions for the job queue.
Contains input/output type definitions for all functions, grouped by module.
"""

from jobqueue.types.api import (
    BulkEnqueueRequest,
    BulkEnqueueResponse,
    EnqueueJobRequest,
    EnqueueJobResponse,
    ErrorResponse,
    HandlerSpec,
    HealthResponse,
    JobResponse,
    QueueStatusResponse,
    RetryJobResponse,
)
from jobqueue.types.job import (
    BulkEnqueueResult,
    JobOutcome,
    JobPayload,
    JobRecord,
    QueueStatus,
)

__all__ = [
    # API types
    "EnqueueJobRequest",
    "EnqueueJobResponse",
    "BulkEnqueueRequest",
    "BulkEnqueueResponse",
    "HandlerSpec",
    "JobResponse",
    "QueueStatusResponse",
    "RetryJobResponse",
    "HealthResponse",
    "ErrorResponse",
    # Job types
    "JobPayload",
    "JobOutcome",
    "JobRecord",
    "QueueStatus",
    "BulkEnqueueResult",
]
