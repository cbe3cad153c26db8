"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from sitescan.constants import (
    METRIC_ACTIVE_JOBS,
    METRIC_JOB_DURATION,
    METRIC_JOB_RETRIES,
    METRIC_JOBS_CLEANED,
    METRIC_JOBS_FINISHED,
    METRIC_JOBS_SUBMITTED,
    METRIC_QUEUE_DEPTH,
    JobStatus,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the analysis queue.

    Collects metrics for:
    - Queue depth per status and active executor slots
    - Job submissions, terminal outcomes and retries
    - Executor duration
    - Cleanup sweeps
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of jobs held by the queue",
            ["status"],
            registry=self._registry,
        )

        self.active_jobs = Gauge(
            METRIC_ACTIVE_JOBS,
            "Number of executor calls currently in flight",
            registry=self._registry,
        )

        self.jobs_submitted = Counter(
            METRIC_JOBS_SUBMITTED,
            "Total number of jobs submitted",
            ["job_type"],
            registry=self._registry,
        )

        self.jobs_finished = Counter(
            METRIC_JOBS_FINISHED,
            "Total number of jobs that reached a terminal state",
            ["job_type", "status"],
            registry=self._registry,
        )

        self.job_retries = Counter(
            METRIC_JOB_RETRIES,
            "Total number of failed attempts scheduled for retry",
            ["job_type"],
            registry=self._registry,
        )

        self.jobs_cleaned = Counter(
            METRIC_JOBS_CLEANED,
            "Total number of terminal jobs reclaimed by cleanup",
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Executor duration per attempt in seconds",
            ["job_type", "outcome"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

    def record_job_submitted(self, job_type: str) -> None:
        """Record a job submission."""
        self.jobs_submitted.labels(job_type=job_type).inc()

    def record_attempt(self, job_type: str, outcome: str, duration_seconds: float) -> None:
        """Record the duration of one executor call."""
        self.job_duration.labels(job_type=job_type, outcome=outcome).observe(
            duration_seconds
        )

    def record_job_finished(self, job_type: str, status: JobStatus) -> None:
        """Record a job reaching COMPLETED or FAILED."""
        self.jobs_finished.labels(job_type=job_type, status=status.value).inc()

    def record_retry(self, job_type: str) -> None:
        """Record a failed attempt that will be retried."""
        self.job_retries.labels(job_type=job_type).inc()

    def record_cleanup(self, removed: int) -> None:
        """Record jobs removed by a cleanup sweep."""
        if removed:
            self.jobs_cleaned.inc(removed)

    def set_active_jobs(self, count: int) -> None:
        """Update the in-flight executor gauge."""
        self.active_jobs.set(count)

    def update_queue_depth(self, counts: dict[str, int]) -> None:
        """Update queue depth gauges from per-status counts."""
        for status in JobStatus:
            self.queue_depth.labels(status=status.value).set(counts.get(status.value, 0))

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the process-wide metrics collector.

    Prometheus collectors register globally by name, so the collector is
    created once and shared by every queue in the process.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """Get the metrics collector instance, creating it on first use."""
    if _metrics is None:
        return setup_metrics()
    return _metrics
