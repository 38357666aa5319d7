"""
Exception hierarchy for the job queue.

Job-level errors are turned into persisted job state by the executor.
StoreUnavailableError is process-level and stops the worker.
"""


class JobQueueError(Exception):
    """Base exception for job queue errors."""


class BadHandlerError(JobQueueError):
    """The stored handler blob could not be turned into a runnable handler."""


class HandlerFaultError(JobQueueError):
    """A handler failed while performing its work."""

    def __init__(self, job_id: int, reason: str):
        super().__init__(f"Job {job_id} failed: {reason}")
        self.job_id = job_id
        self.reason = reason


class RetryRequested(JobQueueError):
    """Raised by a handler to have its job run again after the retry delay."""


class StoreUnavailableError(JobQueueError):
    """The job store connection is gone; the worker must stop and reconnect."""
