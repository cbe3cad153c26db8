"""
Admin statistics computed from job snapshots.
"""

from collections import Counter, defaultdict
from collections.abc import Iterable
from datetime import datetime, timezone

from sitescan.constants import JobStatus
from sitescan.types.api import (
    AnalysisStats,
    ErrorCount,
    ErrorStats,
    PerformanceMetrics,
    PopularUrl,
    RecentAnalysis,
)
from sitescan.types.job import Job

POPULAR_URL_LIMIT = 10
RECENT_ANALYSIS_LIMIT = 20
ERROR_TYPE_LIMIT = 10


def _job_url(job: Job) -> str | None:
    url = job.payload.get("url")
    return str(url) if url else None


def _overall_score(job: Job) -> int | None:
    if isinstance(job.result, dict):
        score = job.result.get("overall_score")
        if isinstance(score, int | float):
            return round(score)
    return None


def build_analysis_stats(jobs: Iterable[Job], now: datetime | None = None) -> AnalysisStats:
    """
    Summarize analyses for the admin dashboard.

    Only jobs still held by the queue are counted; anything reclaimed by
    cleanup no longer contributes.

    Args:
        jobs: Job snapshots, e.g. from JobQueue.list_jobs().
        now: Reference time for "today", defaults to the current UTC time.
    """
    jobs = list(jobs)
    now = now or datetime.now(timezone.utc)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    today = sum(1 for job in jobs if job.created_at >= midnight)

    url_counts: Counter[str] = Counter()
    last_seen: dict[str, datetime] = {}
    for job in jobs:
        url = _job_url(job)
        if url is None:
            continue
        url_counts[url] += 1
        if url not in last_seen or job.created_at > last_seen[url]:
            last_seen[url] = job.created_at

    popular = sorted(
        url_counts,
        key=lambda url: (url_counts[url], last_seen[url]),
        reverse=True,
    )[:POPULAR_URL_LIMIT]

    completed = [job for job in jobs if job.status == JobStatus.COMPLETED]
    failed = [job for job in jobs if job.status == JobStatus.FAILED]

    scored = [
        (job, score)
        for job in completed
        if (score := _overall_score(job)) is not None and job.completed_at is not None
    ]
    scored.sort(key=lambda item: item[0].completed_at, reverse=True)

    errors: defaultdict[str, int] = defaultdict(int)
    for job in failed:
        errors[job.error or "Unknown error"] += 1
    top_errors = sorted(errors.items(), key=lambda item: item[1], reverse=True)

    finished = len(completed) + len(failed)
    success_rate = len(completed) / finished * 100 if finished else 0.0

    durations = [
        (job.completed_at - job.created_at).total_seconds()
        for job in completed
        if job.completed_at is not None
    ]
    average = sum(durations) / len(durations) if durations else 0.0

    return AnalysisStats(
        total_analyses=len(jobs),
        today_analyses=today,
        popular_urls=[
            PopularUrl(url=url, count=url_counts[url], last_analyzed=last_seen[url])
            for url in popular
        ],
        recent_analyses=[
            RecentAnalysis(
                id=job.id,
                url=_job_url(job) or "",
                score=score,
                completed_at=job.completed_at,
            )
            for job, score in scored[:RECENT_ANALYSIS_LIMIT]
        ],
        error_stats=ErrorStats(
            total_errors=len(failed),
            errors_by_type=[
                ErrorCount(error=error, count=count)
                for error, count in top_errors[:ERROR_TYPE_LIMIT]
            ],
        ),
        performance_metrics=PerformanceMetrics(
            success_rate=round(success_rate, 2),
            average_analysis_seconds=round(average, 3),
        ),
    )
