"""
Job-related type definitions for internal use.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from sitescan.constants import JobStatus


class Job(BaseModel):
    """
    A unit of work tracked by the job queue.

    Instances held by the queue are only mutated by its scheduler;
    callers always receive deep-copied snapshots.
    """

    id: str
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    attempts: int = 0
    max_attempts: int = 3
    status: JobStatus = JobStatus.PENDING
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    next_attempt_at: datetime | None = None
    error: str | None = None
    result: Any = None

    @property
    def is_terminal(self) -> bool:
        """Check if the job reached COMPLETED or FAILED."""
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass
class JobContext:
    """
    Context passed to the executor for a single attempt.
    """

    job_id: str
    job_type: str
    payload: dict[str, Any]
    attempt: int
    max_attempts: int

    @property
    def is_last_attempt(self) -> bool:
        """Check if this is the last retry attempt."""
        return self.attempt >= self.max_attempts

    @property
    def remaining_attempts(self) -> int:
        """Get remaining retry attempts."""
        return max(0, self.max_attempts - self.attempt)


class QueueStats(BaseModel):
    """Job counts per status, recomputed on every call."""

    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    total: int = 0
    active: int = 0
    concurrency: int
