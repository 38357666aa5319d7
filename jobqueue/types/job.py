"""
Job-related type definitions for internal use.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from jobqueue.constants import OutcomeStatus
from jobqueue.utils import as_utc


class JobPayload(BaseModel):
    """
    Stored handler structure.
    The job_type selects a registered handler; data rebuilds its instance.
    """

    model_config = ConfigDict(extra="forbid")

    job_type: str
    data: dict[str, Any] = {}


class JobOutcome(BaseModel):
    """
    Result of job execution.
    Returned by job handlers after processing.
    """

    status: OutcomeStatus
    error: str | None = None

    @classmethod
    def completed(cls) -> "JobOutcome":
        return cls(status=OutcomeStatus.COMPLETED)

    @classmethod
    def retry(cls, reason: str | None = None) -> "JobOutcome":
        return cls(status=OutcomeStatus.RETRY, error=reason)

    @classmethod
    def failed(cls, reason: str) -> "JobOutcome":
        return cls(status=OutcomeStatus.FAILED, error=reason)


class JobRecord(BaseModel):
    """
    A row of the jobs table.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    handler: str
    queue: str
    run_at: datetime | None = None
    locked_at: datetime | None = None
    locked_by: str | None = None
    failed_at: datetime | None = None
    error: str | None = None
    created_at: datetime

    @field_validator("run_at", "locked_at", "failed_at", "created_at")
    @classmethod
    def _normalize_utc(cls, value: datetime | None) -> datetime | None:
        # SQLite hands timestamps back naive
        return as_utc(value) if value is not None else None

    @property
    def is_locked(self) -> bool:
        """Check if a worker currently holds the job."""
        return self.locked_at is not None

    @property
    def is_failed(self) -> bool:
        """Check if the job has permanently failed."""
        return self.failed_at is not None


class QueueStatus(BaseModel):
    """Aggregate job counts for one queue."""

    total: int
    locked: int
    failed: int
    outstanding: int


class BulkEnqueueResult(BaseModel):
    """
    Result of a bulk enqueue.

    A partial result means the store dropped some rows; callers should treat
    it as a warning rather than a failure.
    """

    requested: int
    inserted: int

    @property
    def ok(self) -> bool:
        return self.inserted > 0

    @property
    def partial(self) -> bool:
        return 0 < self.inserted < self.requested
