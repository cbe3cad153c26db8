"""
Queue module.
Contains the in-process job queue and its observers.
"""

from sitescan.queue.job_queue import JobActiveError, JobQueue, QueueClosedError
from sitescan.queue.listeners import JobEventLog, log_job_completed, log_job_failed

__all__ = [
    "JobQueue",
    "JobActiveError",
    "QueueClosedError",
    "JobEventLog",
    "log_job_completed",
    "log_job_failed",
]
