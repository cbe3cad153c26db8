"""
Observers for queue lifecycle events.
"""

import logging
from collections import deque
from typing import Any

from sitescan.config import get_settings
from sitescan.constants import JobStatus
from sitescan.types.events import JobEvent
from sitescan.types.job import Job

logger = logging.getLogger(__name__)


def log_job_completed(job: Job, result: Any) -> None:
    """Log a completed job with a short summary of its result."""
    summary: dict[str, Any] = {}
    if isinstance(result, dict):
        summary = {
            key: result[key]
            for key in ("url", "overall_score", "status_code")
            if key in result
        }

    logger.info(
        "Analysis job completed",
        extra={
            "job_id": job.id,
            "job_type": job.type,
            "attempts": job.attempts,
            **summary,
        },
    )


def log_job_failed(job: Job, error: BaseException) -> None:
    """Log a permanently failed job."""
    logger.error(
        "Analysis job failed",
        extra={
            "job_id": job.id,
            "job_type": job.type,
            "attempts": job.attempts,
            "error": job.error or str(error),
            "error_type": error.__class__.__name__,
        },
    )


class JobEventLog:
    """
    Bounded history of terminal job events, newest kept.

    Register `on_completed` / `on_failed` with a JobQueue; admin endpoints
    read the history back with `recent()`.
    """

    def __init__(self, maxlen: int | None = None):
        if maxlen is None:
            maxlen = get_settings().queue_event_history
        self._events: deque[JobEvent] = deque(maxlen=maxlen)

    def __len__(self) -> int:
        return len(self._events)

    def on_completed(self, job: Job, result: Any) -> None:
        self._events.append(
            JobEvent.job_completed(
                job_id=job.id,
                job_type=job.type,
                attempts=job.attempts,
                result=result if isinstance(result, dict) else None,
            )
        )

    def on_failed(self, job: Job, error: BaseException) -> None:
        self._events.append(
            JobEvent.job_failed(
                job_id=job.id,
                job_type=job.type,
                attempts=job.attempts,
                error=job.error or str(error),
            )
        )

    def recent(self, limit: int = 20, status: JobStatus | None = None) -> list[JobEvent]:
        """Return up to `limit` events, newest first, optionally filtered by status."""
        events = [
            event
            for event in reversed(self._events)
            if status is None or event.status == status
        ]
        return events[:limit]

    def attach(self, queue: Any) -> None:
        """Register this log as an observer of a JobQueue."""
        queue.on_completed(self.on_completed)
        queue.on_failed(self.on_failed)
