"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobStatus(StrEnum):
    """
    Job lifecycle states.

    State transitions:
    - PENDING -> PROCESSING (slot offered)
    - PROCESSING -> COMPLETED (success)
    - PROCESSING -> PENDING (retry, attempts < max_attempts)
    - PROCESSING -> FAILED (attempts exhausted)
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class AnalysisType(StrEnum):
    """Kinds of analysis a job can run."""

    FULL = "full"
    SEO = "seo"
    PERFORMANCE = "performance"
    SECURITY = "security"
    ACCESSIBILITY = "accessibility"


# Default values
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_CONCURRENCY = 3

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_DEPTH = "job_queue_depth"
METRIC_ACTIVE_JOBS = "job_queue_active_jobs"
METRIC_JOBS_SUBMITTED = "jobs_submitted_total"
METRIC_JOBS_FINISHED = "jobs_finished_total"
METRIC_JOB_RETRIES = "job_retries_total"
METRIC_JOBS_CLEANED = "jobs_cleaned_total"
METRIC_JOB_DURATION = "job_duration_seconds"

# Trace span names
SPAN_EXECUTE_JOB = "execute_job"

# Job event types
EVENT_JOB_COMPLETED = "job.completed"
EVENT_JOB_FAILED = "job.failed"
