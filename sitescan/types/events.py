"""
Event type definitions for queue observers.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from sitescan.constants import EVENT_JOB_COMPLETED, EVENT_JOB_FAILED, JobStatus


class JobEvent(BaseModel):
    """
    Event recorded when a job reaches a terminal state.
    """

    event_type: str
    job_id: str
    job_type: str
    status: JobStatus
    attempts: int
    timestamp: datetime
    data: dict[str, Any] | None = None

    @classmethod
    def job_completed(
        cls,
        job_id: str,
        job_type: str,
        attempts: int,
        result: Any = None,
    ) -> "JobEvent":
        """Create a job completed event."""
        return cls(
            event_type=EVENT_JOB_COMPLETED,
            job_id=job_id,
            job_type=job_type,
            status=JobStatus.COMPLETED,
            attempts=attempts,
            timestamp=datetime.now(timezone.utc),
            data={"result": result},
        )

    @classmethod
    def job_failed(
        cls,
        job_id: str,
        job_type: str,
        attempts: int,
        error: str,
    ) -> "JobEvent":
        """Create a job failed event."""
        return cls(
            event_type=EVENT_JOB_FAILED,
            job_id=job_id,
            job_type=job_type,
            status=JobStatus.FAILED,
            attempts=attempts,
            timestamp=datetime.now(timezone.utc),
            data={"error": error},
        )
