"""
Unit tests for admin analysis statistics.
"""

from datetime import datetime, timedelta, timezone

from sitescan.constants import JobStatus
from sitescan.queue.stats import build_analysis_stats
from sitescan.types.job import Job

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_job(
    job_id: str,
    url: str | None = "https://example.com/",
    status: JobStatus = JobStatus.COMPLETED,
    created_at: datetime = NOW - timedelta(minutes=10),
    duration: float = 2.0,
    score: int | None = 80,
    error: str | None = None,
) -> Job:
    finished = status in (JobStatus.COMPLETED, JobStatus.FAILED)
    return Job(
        id=job_id,
        type="full",
        payload={"url": url} if url else {},
        status=status,
        attempts=1,
        max_attempts=3,
        created_at=created_at,
        completed_at=created_at + timedelta(seconds=duration) if finished else None,
        error=error,
        result={"overall_score": score} if status == JobStatus.COMPLETED and score is not None else None,
    )


class TestBuildAnalysisStats:
    """Tests for build_analysis_stats."""

    def test_empty(self):
        stats = build_analysis_stats([], now=NOW)

        assert stats.total_analyses == 0
        assert stats.today_analyses == 0
        assert stats.popular_urls == []
        assert stats.recent_analyses == []
        assert stats.error_stats.total_errors == 0
        assert stats.performance_metrics.success_rate == 0.0
        assert stats.performance_metrics.average_analysis_seconds == 0.0

    def test_totals_and_today(self):
        jobs = [
            make_job("a"),
            make_job("b", created_at=NOW - timedelta(days=1)),
            make_job("c", status=JobStatus.PENDING),
        ]

        stats = build_analysis_stats(jobs, now=NOW)

        assert stats.total_analyses == 3
        assert stats.today_analyses == 2

    def test_popular_urls(self):
        jobs = [
            make_job("a", url="https://a.example/"),
            make_job("b", url="https://b.example/"),
            make_job("c", url="https://b.example/", created_at=NOW - timedelta(minutes=1)),
            make_job("d", url=None),
        ]

        stats = build_analysis_stats(jobs, now=NOW)

        assert [(p.url, p.count) for p in stats.popular_urls] == [
            ("https://b.example/", 2),
            ("https://a.example/", 1),
        ]
        assert stats.popular_urls[0].last_analyzed == NOW - timedelta(minutes=1)

    def test_recent_analyses_newest_first(self):
        jobs = [
            make_job("old", created_at=NOW - timedelta(hours=2), score=60),
            make_job("new", created_at=NOW - timedelta(minutes=5), score=90),
            make_job("unscored", score=None),
            make_job("broken", status=JobStatus.FAILED, error="timeout"),
        ]

        stats = build_analysis_stats(jobs, now=NOW)

        assert [(r.id, r.score) for r in stats.recent_analyses] == [("new", 90), ("old", 60)]

    def test_errors_and_success_rate(self):
        jobs = [
            make_job("ok1", duration=1.0),
            make_job("ok2", duration=3.0),
            make_job("f1", status=JobStatus.FAILED, error="HTTP 500"),
            make_job("f2", status=JobStatus.FAILED, error="HTTP 500"),
            make_job("f3", status=JobStatus.FAILED, error="timeout"),
            make_job("p", status=JobStatus.PROCESSING),
        ]

        stats = build_analysis_stats(jobs, now=NOW)

        assert stats.error_stats.total_errors == 3
        assert [(e.error, e.count) for e in stats.error_stats.errors_by_type] == [
            ("HTTP 500", 2),
            ("timeout", 1),
        ]
        assert stats.performance_metrics.success_rate == 40.0
        assert stats.performance_metrics.average_analysis_seconds == 2.0
