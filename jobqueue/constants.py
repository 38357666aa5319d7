"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobState(StrEnum):
    """
    Job lifecycle states.

    Only failed jobs (failed_at set) and pending/claimed jobs exist as rows;
    completed jobs are deleted.

    State transitions:
    - PENDING -> CLAIMED (lock acquired)
    - CLAIMED -> COMPLETED (handler returned, row deleted)
    - CLAIMED -> RETRY_SCHEDULED (run_at pushed forward, lock released)
    - CLAIMED -> FAILED (failed_at/error set, lock released)
    - RETRY_SCHEDULED -> PENDING (once run_at elapses)
    """

    PENDING = "pending"
    CLAIMED = "claimed"
    COMPLETED = "completed"
    RETRY_SCHEDULED = "retry_scheduled"
    FAILED = "failed"


class OutcomeStatus(StrEnum):
    """What a handler reports back to the executor."""

    COMPLETED = "completed"
    RETRY = "retry"
    FAILED = "failed"


# Default values
DEFAULT_QUEUE = "default"
DEFAULT_CANDIDATE_BATCH_SIZE = 5
DEFAULT_RETRY_DELAY_SECONDS = 2 * 60 * 60
DEFAULT_SLEEP_SECONDS = 5.0

# Metrics names
METRIC_QUEUE_JOBS = "job_queue_jobs"
METRIC_JOBS_ENQUEUED = "jobs_enqueued_total"
METRIC_JOBS_FINISHED = "jobs_finished_total"
METRIC_JOB_DURATION = "job_duration_seconds"
METRIC_LOCK_ATTEMPTS = "lock_attempts_total"
METRIC_STALE_LOCKS_RELEASED = "stale_locks_released_total"

# Trace span names
SPAN_EXECUTE_JOB = "execute_job"
