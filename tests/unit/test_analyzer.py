"""
Unit tests for page parsing, analyzers and the analysis executor.
"""

import httpx
import pytest

from conftest import SAMPLE_HTML, SECURE_HEADERS
from sitescan.types.job import JobContext
from sitescan.worker.analyzer import (
    AnalysisError,
    AnalyzedPage,
    PageSnapshot,
    analyze_accessibility,
    analyze_performance,
    analyze_security,
    analyze_seo,
    fetch_page,
    get_analyzer,
    list_analyzers,
    parse_page,
)
from sitescan.worker.handlers import AnalysisExecutor, resolve_categories


def make_page(
    html: str = SAMPLE_HTML,
    url: str = "https://example.com/",
    headers: dict[str, str] | None = None,
    elapsed_ms: float = 120.0,
) -> AnalyzedPage:
    snapshot = PageSnapshot(
        url=url,
        final_url=url,
        status_code=200,
        headers=dict(SECURE_HEADERS if headers is None else headers),
        html=html,
        elapsed_ms=elapsed_ms,
        size_bytes=len(html.encode()),
    )
    return AnalyzedPage(snapshot=snapshot, parsed=parse_page(html))


class TestParsePage:
    """Tests for HTML fact extraction."""

    def test_extracts_head_facts(self):
        parsed = parse_page(SAMPLE_HTML)

        assert parsed.title == "Example Domain for Testing"
        assert parsed.meta_description.startswith("An example page")
        assert parsed.has_viewport is True
        assert parsed.canonical == "https://example.com/"
        assert parsed.lang == "en"

    def test_counts_body_elements(self):
        parsed = parse_page(SAMPLE_HTML)

        assert parsed.h1_count == 1
        assert parsed.images == 2
        assert parsed.images_missing_alt == 1
        assert parsed.links == 1
        assert parsed.scripts == 1
        assert parsed.stylesheets == 1

    def test_form_labels(self):
        parsed = parse_page(SAMPLE_HTML)

        # Hidden inputs are ignored; #name has no label
        assert parsed.inputs == 2
        assert parsed.inputs_unlabeled == 1

    def test_wrapping_label_and_aria(self):
        html = """
        <label>Name <input type="text"></label>
        <input type="text" aria-label="Search">
        <textarea id="bio"></textarea>
        """
        parsed = parse_page(html)

        assert parsed.inputs == 3
        assert parsed.inputs_unlabeled == 1

    def test_empty_document(self):
        parsed = parse_page("")

        assert parsed.title is None
        assert parsed.lang is None
        assert parsed.images == 0


class TestAnalyzers:
    """Tests for category analyzers."""

    def test_registry(self):
        assert list_analyzers() == ["seo", "performance", "security", "accessibility"]
        assert get_analyzer("seo") is analyze_seo
        assert get_analyzer("nonexistent") is None

    def test_seo_good_page(self):
        report = analyze_seo(make_page())

        assert report.score == 100
        assert report.issues == []
        assert report.metrics["h1_count"] == 1

    def test_seo_bare_page(self):
        report = analyze_seo(make_page(html="<html><body><h1>a</h1><h1>b</h1></body></html>"))

        assert report.score == 100 - 30 - 25 - 10 - 10
        assert "Missing <title>" in report.issues
        assert "Missing meta description" in report.issues
        assert "No canonical link" in report.issues

    def test_performance_slow_uncompressed(self):
        page = make_page(headers={}, elapsed_ms=4500)
        report = analyze_performance(page)

        assert report.score == 100 - 40 - 15
        assert report.metrics["response_time_ms"] == 4500
        assert report.metrics["compression"] is None

    def test_security_all_headers_over_https(self):
        report = analyze_security(make_page())

        assert report.score == 100
        assert report.metrics["https"] is True

    def test_security_plain_http_without_headers(self):
        report = analyze_security(make_page(url="http://example.com/", headers={}))

        assert report.score == 0
        assert "Page is not served over HTTPS" in report.issues
        assert len(report.issues) == 6

    def test_accessibility(self):
        report = analyze_accessibility(make_page())

        # One of two images lacks alt (15 points), one unlabeled input (5 points)
        assert report.score == 80
        assert report.metrics["images_missing_alt"] == 1
        assert report.metrics["inputs_unlabeled"] == 1


class TestFetchPage:
    """Tests for page fetching."""

    async def test_fetch_success(self, page_transport: httpx.MockTransport):
        async with httpx.AsyncClient(transport=page_transport) as client:
            snapshot = await fetch_page("https://example.com/", client)

        assert snapshot.status_code == 200
        assert snapshot.final_url == "https://example.com/"
        assert snapshot.headers["x-frame-options"] == "DENY"
        assert "<title>" in snapshot.html
        assert snapshot.size_bytes > 0

    async def test_fetch_http_error_status(self, page_transport: httpx.MockTransport):
        async with httpx.AsyncClient(transport=page_transport) as client:
            with pytest.raises(AnalysisError, match="HTTP 404"):
                await fetch_page("https://example.com/missing", client)

    async def test_fetch_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(AnalysisError, match="Failed to fetch"):
                await fetch_page("https://down.example.com/", client)

    async def test_fetch_follows_redirects(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.scheme == "http":
                return httpx.Response(301, headers={"location": "https://example.com/"})
            return httpx.Response(200, text="<html></html>")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            snapshot = await fetch_page("http://example.com/", client)

        assert snapshot.url == "http://example.com/"
        assert snapshot.final_url == "https://example.com/"
        assert snapshot.is_https is True


class TestAnalysisExecutor:
    """Tests for the queue-facing executor."""

    @pytest.fixture
    def context(self) -> JobContext:
        return JobContext(
            job_id="job-1",
            job_type="full",
            payload={"url": "https://example.com/", "analysis_id": "a-1"},
            attempt=1,
            max_attempts=3,
        )

    async def test_full_analysis(self, page_transport: httpx.MockTransport, context: JobContext):
        executor = AnalysisExecutor(transport=page_transport)

        result = await executor(context)

        assert result["analysis_id"] == "a-1"
        assert result["url"] == "https://example.com/"
        assert result["status_code"] == 200
        assert set(result["categories"]) == {"seo", "performance", "security", "accessibility"}
        scores = [c["score"] for c in result["categories"].values()]
        assert result["overall_score"] == round(sum(scores) / len(scores))

    async def test_single_category(self, page_transport: httpx.MockTransport, context: JobContext):
        context.job_type = "security"
        executor = AnalysisExecutor(transport=page_transport)

        result = await executor(context)

        assert list(result["categories"]) == ["security"]
        assert result["overall_score"] == result["categories"]["security"]["score"]

    async def test_missing_url(self, page_transport: httpx.MockTransport, context: JobContext):
        context.payload = {}
        executor = AnalysisExecutor(transport=page_transport)

        with pytest.raises(AnalysisError, match="Missing 'url'"):
            await executor(context)

    async def test_unknown_job_type(self, page_transport: httpx.MockTransport, context: JobContext):
        context.job_type = "nonexistent_handler"
        executor = AnalysisExecutor(transport=page_transport)

        with pytest.raises(AnalysisError, match="No analyzer registered"):
            await executor(context)

    async def test_http_failure_propagates(
        self, page_transport: httpx.MockTransport, context: JobContext
    ):
        context.payload["url"] = "https://example.com/missing"
        executor = AnalysisExecutor(transport=page_transport)

        with pytest.raises(AnalysisError):
            await executor(context)


class TestResolveCategories:
    """Tests for job type to category mapping."""

    def test_full_runs_everything(self):
        assert resolve_categories("full") == list_analyzers()

    def test_full_with_subset(self):
        assert resolve_categories("full", {"categories": ["seo", "security", "seo"]}) == [
            "seo",
            "security",
        ]

    def test_full_with_unknown_category(self):
        with pytest.raises(AnalysisError, match="Unknown analysis categories"):
            resolve_categories("full", {"categories": ["seo", "speed"]})

    def test_single_category(self):
        assert resolve_categories("accessibility") == ["accessibility"]
