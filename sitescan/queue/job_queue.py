"""
In-process analysis job queue.

Jobs are held in memory and offered to a bounded number of executor slots
in submission order. Failed attempts are retried with exponential backoff
until the job's attempt budget is spent; finished jobs are reclaimed by a
periodic cleanup sweep.

All queue state is mutated from the event loop thread only, between awaits,
so no locking is needed.
"""

import asyncio
import contextvars
import inspect
import itertools
import logging
import time
from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from sitescan.config import get_settings
from sitescan.constants import SPAN_EXECUTE_JOB, JobStatus
from sitescan.observability.logging import bind_job_context
from sitescan.observability.metrics import MetricsCollector, get_metrics
from sitescan.observability.tracing import get_tracer
from sitescan.types.job import Job, JobContext, QueueStats

logger = logging.getLogger(__name__)

# Type aliases for the injected executor and observers
Executor = Callable[[JobContext], Awaitable[Any]]
CompletedListener = Callable[[Job, Any], Any]
FailedListener = Callable[[Job, BaseException], Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueueClosedError(RuntimeError):
    """Raised when submitting to a queue that has been shut down."""


class JobActiveError(Exception):
    """Raised when removing a job that is still pending or processing."""

    def __init__(self, job_id: str, status: JobStatus):
        self.job_id = job_id
        self.status = status
        super().__init__(f"Job {job_id} is {status.value} and cannot be removed")


class JobQueue:
    """
    Bounded-concurrency job scheduler with retry and backoff.

    Scheduling is re-triggered after every submit, every terminal or retry
    transition and every backoff timer firing. A job waiting out its backoff
    keeps the PENDING status but is not offered a slot until its timer fires.

    Example:
        queue = JobQueue(executor=AnalysisExecutor())
        job_id = queue.submit("seo", {"url": "https://example.com"})
    """

    def __init__(
        self,
        executor: Executor,
        concurrency: int | None = None,
        max_attempts: int | None = None,
        backoff_base_seconds: float | None = None,
        retention_seconds: float | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the queue.

        Args:
            executor: Async callable run once per attempt with a JobContext.
            concurrency: Maximum number of jobs in PROCESSING at once.
            max_attempts: Default attempt budget for submitted jobs.
            backoff_base_seconds: Retry delay is base * 2**attempts.
            retention_seconds: Age after which finished jobs are reclaimed.
            metrics: Metrics collector. Uses the process-wide one if omitted.

        Raises:
            ValueError: If the executor is missing or a limit is not positive.
        """
        if executor is None or not callable(executor):
            raise ValueError("JobQueue requires an executor callable")

        settings = get_settings()

        self.concurrency = (
            concurrency if concurrency is not None else settings.queue_concurrency
        )
        self.max_attempts = (
            max_attempts if max_attempts is not None else settings.queue_max_attempts
        )
        self.backoff_base_seconds = (
            backoff_base_seconds
            if backoff_base_seconds is not None
            else settings.queue_backoff_base_seconds
        )
        self.retention = timedelta(
            seconds=(
                retention_seconds
                if retention_seconds is not None
                else settings.queue_retention_seconds
            )
        )

        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_base_seconds < 0:
            raise ValueError("backoff_base_seconds must not be negative")

        self._executor = executor
        self._metrics = metrics or get_metrics()

        self._jobs: dict[str, Job] = {}
        # Submission sequence, tie-break for equal created_at values
        self._order: dict[str, int] = {}
        self._sequence = itertools.count()

        self._active_jobs = 0
        self._unfinished = 0
        self._idle = asyncio.Event()
        self._idle.set()

        self._retry_timers: dict[str, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()
        self._listener_tasks: set[asyncio.Future] = set()

        self._completed_listeners: list[CompletedListener] = []
        self._failed_listeners: list[FailedListener] = []

        self._running = True

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def active_jobs(self) -> int:
        """Number of executor calls currently in flight."""
        return self._active_jobs

    @property
    def running(self) -> bool:
        """False once shutdown() has been called."""
        return self._running

    def submit(
        self,
        job_type: str,
        payload: dict[str, Any] | None = None,
        max_attempts: int | None = None,
    ) -> str:
        """
        Add a job and schedule processing without waiting for it to run.

        Must be called from within the running event loop.

        Args:
            job_type: Tag forwarded to the executor.
            payload: Opaque data forwarded to the executor.
            max_attempts: Overrides the queue's default attempt budget.

        Returns:
            The new job id.

        Raises:
            QueueClosedError: If shutdown() has been called.
            ValueError: If max_attempts is not positive.
        """
        if not self._running:
            raise QueueClosedError("Job queue is shut down")
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        job = Job(
            id=str(uuid4()),
            type=job_type,
            payload=payload or {},
            max_attempts=max_attempts or self.max_attempts,
            created_at=_utcnow(),
        )

        self._jobs[job.id] = job
        self._order[job.id] = next(self._sequence)
        self._unfinished += 1
        self._idle.clear()

        self._metrics.record_job_submitted(job_type)
        logger.info(
            "Job added to queue",
            extra={
                "job_id": job.id,
                "job_type": job_type,
                "max_attempts": job.max_attempts,
            },
        )

        asyncio.get_running_loop().call_soon(self._process_jobs)
        return job.id

    def get_status(self, job_id: str) -> Job | None:
        """Return a snapshot of a job, or None if unknown or reclaimed."""
        job = self._jobs.get(job_id)
        if job is None:
            return None
        return job.model_copy(deep=True)

    def list_jobs(self) -> list[Job]:
        """Snapshots of every tracked job, in submission order."""
        return [
            job.model_copy(deep=True)
            for job in sorted(self._jobs.values(), key=lambda job: self._order[job.id])
        ]

    def remove(self, job_id: str) -> bool:
        """
        Remove a finished job immediately.

        Returns:
            True if the job was removed, False if it is unknown.

        Raises:
            JobActiveError: If the job is still PENDING or PROCESSING.
        """
        job = self._jobs.get(job_id)
        if job is None:
            return False
        if not job.is_terminal:
            raise JobActiveError(job_id, job.status)

        del self._jobs[job_id]
        self._order.pop(job_id, None)
        logger.info("Job removed", extra={"job_id": job_id, "status": job.status.value})
        return True

    def get_stats(self) -> QueueStats:
        """Count jobs per status from the current job mapping."""
        counts = Counter(job.status.value for job in self._jobs.values())
        self._metrics.update_queue_depth(counts)

        return QueueStats(
            pending=counts[JobStatus.PENDING.value],
            processing=counts[JobStatus.PROCESSING.value],
            completed=counts[JobStatus.COMPLETED.value],
            failed=counts[JobStatus.FAILED.value],
            total=len(self._jobs),
            active=self._active_jobs,
            concurrency=self.concurrency,
        )

    def cleanup(self, now: datetime | None = None) -> int:
        """
        Remove finished jobs whose completed_at is older than the retention window.

        PENDING and PROCESSING jobs are never removed, however old.

        Args:
            now: Reference time, defaults to the current UTC time.

        Returns:
            Number of jobs removed.
        """
        cutoff = (now or _utcnow()) - self.retention

        expired = [
            job_id
            for job_id, job in self._jobs.items()
            if job.is_terminal
            and job.completed_at is not None
            and job.completed_at < cutoff
        ]
        for job_id in expired:
            del self._jobs[job_id]
            self._order.pop(job_id, None)

        self._metrics.record_cleanup(len(expired))
        if expired:
            logger.info(
                "Cleaned up finished jobs",
                extra={"removed": len(expired), "remaining": len(self._jobs)},
            )
        return len(expired)

    def on_completed(self, listener: CompletedListener) -> CompletedListener:
        """
        Register an observer called with (job, result) when a job completes.

        Can be used as a decorator. Coroutine functions are scheduled as
        tasks and never awaited by the scheduler.
        """
        self._completed_listeners.append(listener)
        return listener

    def on_failed(self, listener: FailedListener) -> FailedListener:
        """Register an observer called with (job, error) when a job fails permanently."""
        self._failed_listeners.append(listener)
        return listener

    def backoff_delay(self, attempts: int) -> float:
        """Delay in seconds before the next attempt after `attempts` tries."""
        return self.backoff_base_seconds * (2**attempts)

    async def join(self) -> None:
        """
        Wait until every submitted job has reached a terminal state.

        Returns once shutdown() has finished, even if jobs are left PENDING.
        """
        await self._idle.wait()

    async def shutdown(self) -> None:
        """
        Stop offering slots and wait for in-flight executor calls.

        Pending retries are abandoned; their jobs stay PENDING. Later
        submit() calls raise QueueClosedError.
        """
        logger.info(
            "Job queue shutting down",
            extra={"in_flight": len(self._tasks), "retry_timers": len(self._retry_timers)},
        )
        self._running = False

        for handle in self._retry_timers.values():
            handle.cancel()
        self._retry_timers.clear()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        # Nothing left will ever run; release join() waiters
        self._idle.set()
        logger.info("Job queue stopped")

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _process_jobs(self) -> None:
        """Fill free slots with the oldest eligible pending jobs."""
        if not self._running:
            return

        while self._active_jobs < self.concurrency:
            job = self._next_pending_job()
            if job is None:
                return
            self._start_job(job)

    def _next_pending_job(self) -> Job | None:
        candidates = [
            job
            for job in self._jobs.values()
            if job.status == JobStatus.PENDING and job.id not in self._retry_timers
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda job: (job.created_at, self._order[job.id]))

    def _start_job(self, job: Job) -> None:
        if job.status != JobStatus.PENDING:
            return

        job.status = JobStatus.PROCESSING
        job.attempts += 1
        job.started_at = _utcnow()
        job.next_attempt_at = None

        self._active_jobs += 1
        self._metrics.set_active_jobs(self._active_jobs)

        # Fresh context so log bindings and spans do not leak between jobs
        task = asyncio.create_task(
            self._run_job(job),
            name=f"job-{job.id}",
            context=contextvars.Context(),
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_job(self, job: Job) -> None:
        """Run one attempt and apply the resulting transition."""
        context = JobContext(
            job_id=job.id,
            job_type=job.type,
            payload=job.payload,
            attempt=job.attempts,
            max_attempts=job.max_attempts,
        )
        bind_job_context(job.id, job.type, job.attempts)
        logger.info("Processing job", extra={"max_attempts": job.max_attempts})

        started = time.perf_counter()
        try:
            with get_tracer().start_as_current_span(SPAN_EXECUTE_JOB) as span:
                span.set_attribute("job.id", job.id)
                span.set_attribute("job.type", job.type)
                span.set_attribute("job.attempt", job.attempts)
                result = await self._executor(context)
        except (KeyboardInterrupt, SystemExit):
            raise
        except BaseException as exc:
            self._metrics.record_attempt(job.type, "failure", time.perf_counter() - started)
            task = asyncio.current_task()
            if isinstance(exc, asyncio.CancelledError) and task is not None and task.cancelling():
                # The task itself was cancelled, not just the executor's work
                self._abandon_attempt(job)
                raise
            self._handle_failure(job, exc)
        else:
            self._metrics.record_attempt(job.type, "success", time.perf_counter() - started)
            self._handle_success(job, result)

    def _handle_success(self, job: Job, result: Any) -> None:
        job.status = JobStatus.COMPLETED
        job.completed_at = _utcnow()
        job.result = result
        self._release_slot()
        self._mark_finished(job)

        logger.info("Job completed", extra={"attempts": job.attempts})
        self._emit(self._completed_listeners, job, result)

        self._process_jobs()

    def _abandon_attempt(self, job: Job) -> None:
        """
        Return a cancelled attempt's job to PENDING and free its slot.

        No rescheduling happens here; the job is picked up by the next trigger.
        """
        job.status = JobStatus.PENDING
        self._release_slot()
        logger.warning("Job attempt cancelled", extra={"attempts": job.attempts})

    def _handle_failure(self, job: Job, exc: BaseException) -> None:
        message = str(exc) or exc.__class__.__name__

        if job.attempts >= job.max_attempts:
            job.status = JobStatus.FAILED
            job.error = message
            job.completed_at = _utcnow()
            self._mark_finished(job)

            logger.error(
                "Job failed permanently",
                extra={"error": message, "attempts": job.attempts},
            )
            self._emit(self._failed_listeners, job, exc)
            self._release_slot()
        else:
            delay = self.backoff_delay(job.attempts)
            job.status = JobStatus.PENDING
            job.next_attempt_at = _utcnow() + timedelta(seconds=delay)

            loop = asyncio.get_running_loop()
            self._retry_timers[job.id] = loop.call_later(delay, self._retry_ready, job.id)
            self._release_slot()
            self._metrics.record_retry(job.type)

            logger.warning(
                "Job attempt failed, retry scheduled",
                extra={"error": message, "attempts": job.attempts, "delay": delay},
            )

        self._process_jobs()

    def _retry_ready(self, job_id: str) -> None:
        """Backoff timer callback: make the job eligible and reschedule."""
        self._retry_timers.pop(job_id, None)

        job = self._jobs.get(job_id)
        if job is None or job.status != JobStatus.PENDING:
            return

        job.next_attempt_at = None
        logger.info(
            "Retrying job",
            extra={"job_id": job_id, "next_attempt": job.attempts + 1},
        )
        self._process_jobs()

    def _release_slot(self) -> None:
        self._active_jobs -= 1
        self._metrics.set_active_jobs(self._active_jobs)

    def _mark_finished(self, job: Job) -> None:
        self._metrics.record_job_finished(job.type, job.status)
        self._unfinished -= 1
        if self._unfinished == 0:
            self._idle.set()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def _emit(self, listeners: list[Callable[..., Any]], job: Job, value: Any) -> None:
        """
        Notify observers of a terminal transition.

        Each listener gets its own snapshot. Listener errors are logged and
        never reach the scheduler; awaitables are left running as tasks.
        """
        for listener in list(listeners):
            try:
                outcome = listener(job.model_copy(deep=True), value)
            except Exception:
                logger.exception(
                    "Job listener raised",
                    extra={"listener": getattr(listener, "__name__", repr(listener))},
                )
                continue

            if inspect.isawaitable(outcome):
                task = asyncio.ensure_future(outcome)
                self._listener_tasks.add(task)
                task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Future) -> None:
        self._listener_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Async job listener raised", exc_info=exc)
