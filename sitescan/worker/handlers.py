"""
Analysis executor injected into the job queue.

The executor runs once per attempt. Any exception it raises counts as a
failed attempt; the queue decides whether to retry.
"""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from sitescan.config import get_settings
from sitescan.constants import AnalysisType
from sitescan.types.job import JobContext
from sitescan.worker.analyzer import (
    AnalysisError,
    AnalyzedPage,
    fetch_page,
    get_analyzer,
    list_analyzers,
    parse_page,
)

logger = logging.getLogger(__name__)


def resolve_categories(job_type: str, options: dict[str, Any] | None = None) -> list[str]:
    """
    Map a job type to the analyzer categories it runs.

    A `full` job runs every registered category, or the subset named in
    `options["categories"]`.

    Raises:
        AnalysisError: If the job type or a requested category is unknown.
    """
    if job_type != AnalysisType.FULL:
        if get_analyzer(job_type) is None:
            raise AnalysisError(f"No analyzer registered for job type: {job_type}")
        return [job_type]

    requested = (options or {}).get("categories")
    if not requested:
        return list_analyzers()

    unknown = [name for name in requested if get_analyzer(name) is None]
    if unknown:
        raise AnalysisError(f"Unknown analysis categories: {', '.join(unknown)}")
    return list(dict.fromkeys(requested))


class AnalysisExecutor:
    """
    Callable that fetches the job's URL and runs the requested analyzers.

    Payload shape: {"url": str, "analysis_id": str | None, "options": dict}.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
    ):
        """
        Initialize the executor.

        Args:
            transport: Optional httpx transport (tests pass a MockTransport).
            timeout: Per-request timeout in seconds.
            user_agent: User-Agent header sent with every fetch.
        """
        settings = get_settings()
        self._transport = transport
        self._timeout = timeout or settings.analysis_timeout_seconds
        self._user_agent = user_agent or settings.analysis_user_agent

    async def __call__(self, context: JobContext) -> dict[str, Any]:
        payload = context.payload
        url = payload.get("url")
        if not url:
            raise AnalysisError("Missing 'url' in payload")

        options = payload.get("options") or {}
        categories = resolve_categories(context.job_type, options)

        logger.info(
            "Executing analysis",
            extra={
                "url": url,
                "analysis_id": payload.get("analysis_id"),
                "categories": categories,
                "attempt": context.attempt,
                "remaining_attempts": context.remaining_attempts,
                "last_attempt": context.is_last_attempt,
            },
        )

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self._timeout,
            headers={"User-Agent": self._user_agent},
        ) as client:
            snapshot = await fetch_page(url, client)

        page = AnalyzedPage(snapshot=snapshot, parsed=parse_page(snapshot.html))

        reports = {}
        for category in categories:
            analyzer = get_analyzer(category)
            reports[category] = analyzer(page).model_dump()

        overall = round(sum(r["score"] for r in reports.values()) / len(reports))

        return {
            "analysis_id": payload.get("analysis_id"),
            "url": url,
            "final_url": snapshot.final_url,
            "status_code": snapshot.status_code,
            "analysis_type": context.job_type,
            "categories": reports,
            "overall_score": overall,
            "analyzed_at": datetime.now(timezone.utc).isoformat(),
        }
