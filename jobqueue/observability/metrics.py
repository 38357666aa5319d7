"""
Prometheus metrics collection.
"""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)

from jobqueue.constants import (
    METRIC_QUEUE_JOBS,
    METRIC_JOBS_ENQUEUED,
    METRIC_JOBS_FINISHED,
    METRIC_JOB_DURATION,
    METRIC_LOCK_ATTEMPTS,
    METRIC_STALE_LOCKS_RELEASED,
)
from jobqueue.types.job import QueueStatus

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the job queue.

    Collects metrics for:
    - Queue counts (total, locked, failed, outstanding)
    - Job enqueues and finished runs by outcome
    - Job execution duration
    - Lock attempts and stale lock recovery
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        # Queue counts gauge (by queue and count kind)
        self.queue_jobs = Gauge(
            METRIC_QUEUE_JOBS,
            "Number of jobs in the queue by kind",
            ["queue", "kind"],
            registry=self._registry,
        )

        # Jobs enqueued counter
        self.jobs_enqueued = Counter(
            METRIC_JOBS_ENQUEUED,
            "Total number of jobs enqueued",
            ["queue"],
            registry=self._registry,
        )

        # Jobs finished counter
        self.jobs_finished = Counter(
            METRIC_JOBS_FINISHED,
            "Total number of job runs by outcome",
            ["queue", "outcome"],
            registry=self._registry,
        )

        # Job duration histogram
        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Job execution duration in seconds",
            ["queue", "outcome"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

        # Lock attempts counter
        self.lock_attempts = Counter(
            METRIC_LOCK_ATTEMPTS,
            "Total number of lock attempts by result",
            ["worker_id", "result"],
            registry=self._registry,
        )

        # Stale locks counter
        self.stale_locks_released = Counter(
            METRIC_STALE_LOCKS_RELEASED,
            "Total number of stale locks released by the reaper",
            registry=self._registry,
        )

    def record_jobs_enqueued(self, queue: str, count: int = 1) -> None:
        """Record enqueued jobs."""
        if count > 0:
            self.jobs_enqueued.labels(queue=queue).inc(count)

    def record_job_finished(
        self,
        queue: str,
        outcome: str,
        duration_seconds: float,
    ) -> None:
        """Record the end of a job run."""
        self.jobs_finished.labels(queue=queue, outcome=outcome).inc()
        self.job_duration.labels(queue=queue, outcome=outcome).observe(
            duration_seconds
        )

    def record_lock_attempt(self, worker_id: str, acquired: bool) -> None:
        """Record a lock attempt."""
        result = "acquired" if acquired else "contended"
        self.lock_attempts.labels(worker_id=worker_id, result=result).inc()

    def record_stale_locks_released(self, count: int) -> None:
        """Record locks released by the reaper."""
        if count > 0:
            self.stale_locks_released.inc(count)

    def update_queue_status(self, queue: str, status: QueueStatus) -> None:
        """Update queue gauges from a status snapshot."""
        for kind, value in status.model_dump().items():
            self.queue_jobs.labels(queue=queue, kind=kind).set(value)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
