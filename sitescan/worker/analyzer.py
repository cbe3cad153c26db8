"""
Page fetching, parsing and per-category analyzers.

Analyzers are plain functions registered by category name. Each one
receives a fetched and parsed page and returns a CategoryReport scored
from 0 to 100, starting at 100 and deducting per finding.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Any

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """Raised when a page cannot be analyzed. The queue retries these."""


class CategoryReport(BaseModel):
    """Findings for a single analysis category."""

    score: int = Field(ge=0, le=100)
    issues: list[str] = Field(default_factory=list)
    metrics: dict[str, Any] = Field(default_factory=dict)


@dataclass
class PageSnapshot:
    """Raw response for the analyzed URL."""

    url: str
    final_url: str
    status_code: int
    headers: dict[str, str]
    html: str
    elapsed_ms: float
    size_bytes: int

    @property
    def is_https(self) -> bool:
        return self.final_url.lower().startswith("https://")


@dataclass
class ParsedPage:
    """Facts extracted from the page markup."""

    title: str | None = None
    meta_description: str | None = None
    has_viewport: bool = False
    canonical: str | None = None
    lang: str | None = None
    h1_count: int = 0
    images: int = 0
    images_missing_alt: int = 0
    links: int = 0
    scripts: int = 0
    stylesheets: int = 0
    inputs: int = 0
    inputs_unlabeled: int = 0


@dataclass
class AnalyzedPage:
    snapshot: PageSnapshot
    parsed: ParsedPage


class _PageParser(HTMLParser):
    """Single-pass collector for the tags the analyzers look at."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.page = ParsedPage()
        self._in_title = False
        self._title_parts: list[str] = []
        self._labeled_ids: set[str] = set()
        self._input_ids: list[str | None] = []
        self._label_depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        attributes = {name.lower(): (value or "") for name, value in attrs}
        page = self.page

        if tag == "html":
            page.lang = attributes.get("lang") or None
        elif tag == "title":
            self._in_title = True
        elif tag == "meta":
            name = attributes.get("name", "").lower()
            if name == "description":
                page.meta_description = attributes.get("content", "").strip()
            elif name == "viewport":
                page.has_viewport = True
        elif tag == "link":
            rel = attributes.get("rel", "").lower().split()
            if "canonical" in rel:
                page.canonical = attributes.get("href") or None
            if "stylesheet" in rel:
                page.stylesheets += 1
        elif tag == "h1":
            page.h1_count += 1
        elif tag == "img":
            page.images += 1
            if "alt" not in attributes:
                page.images_missing_alt += 1
        elif tag == "a" and attributes.get("href"):
            page.links += 1
        elif tag == "script" and attributes.get("src"):
            page.scripts += 1
        elif tag == "label":
            self._label_depth += 1
            if attributes.get("for"):
                self._labeled_ids.add(attributes["for"])
        elif tag in ("input", "select", "textarea"):
            if attributes.get("type", "").lower() in ("hidden", "submit", "button", "image"):
                return
            page.inputs += 1
            labeled = (
                self._label_depth > 0
                or bool(attributes.get("aria-label"))
                or bool(attributes.get("aria-labelledby"))
            )
            self._input_ids.append(None if labeled else attributes.get("id", ""))

    def handle_endtag(self, tag: str) -> None:
        if tag == "title":
            self._in_title = False
        elif tag == "label" and self._label_depth:
            self._label_depth -= 1

    def handle_data(self, data: str) -> None:
        if self._in_title:
            self._title_parts.append(data)

    def close(self) -> None:
        super().close()
        title = "".join(self._title_parts).strip()
        self.page.title = title or None
        self.page.inputs_unlabeled = sum(
            1
            for input_id in self._input_ids
            if input_id is not None and input_id not in self._labeled_ids
        )


def parse_page(html: str) -> ParsedPage:
    """Extract analyzable facts from an HTML document."""
    parser = _PageParser()
    parser.feed(html)
    parser.close()
    return parser.page


async def fetch_page(url: str, client: httpx.AsyncClient) -> PageSnapshot:
    """
    Fetch a page, following redirects.

    Raises:
        AnalysisError: On transport errors or an HTTP error status.
    """
    started = time.perf_counter()
    try:
        response = await client.get(url, follow_redirects=True)
    except httpx.HTTPError as e:
        raise AnalysisError(f"Failed to fetch {url}: {e}") from e
    elapsed_ms = (time.perf_counter() - started) * 1000

    if response.status_code >= 400:
        raise AnalysisError(f"HTTP {response.status_code} fetching {url}")

    return PageSnapshot(
        url=url,
        final_url=str(response.url),
        status_code=response.status_code,
        headers={key.lower(): value for key, value in response.headers.items()},
        html=response.text,
        elapsed_ms=round(elapsed_ms, 2),
        size_bytes=len(response.content),
    )


# ============================================================================
# Analyzer registry
# ============================================================================

Analyzer = Callable[[AnalyzedPage], CategoryReport]

_analyzers: dict[str, Analyzer] = {}


def register_analyzer(category: str) -> Callable[[Analyzer], Analyzer]:
    """
    Decorator to register an analyzer for a category.

    Example:
        @register_analyzer("seo")
        def analyze_seo(page: AnalyzedPage) -> CategoryReport:
            ...
    """
    def decorator(analyzer: Analyzer) -> Analyzer:
        _analyzers[category] = analyzer
        return analyzer
    return decorator


def get_analyzer(category: str) -> Analyzer | None:
    """Get the analyzer for a category, or None."""
    return _analyzers.get(category)


def list_analyzers() -> list[str]:
    """List all registered categories."""
    return list(_analyzers.keys())


@dataclass
class _Scorecard:
    score: int = 100
    issues: list[str] = field(default_factory=list)

    def deduct(self, points: int, issue: str) -> None:
        self.score = max(0, self.score - points)
        self.issues.append(issue)

    def report(self, **metrics: Any) -> CategoryReport:
        return CategoryReport(score=self.score, issues=self.issues, metrics=metrics)


@register_analyzer("seo")
def analyze_seo(page: AnalyzedPage) -> CategoryReport:
    parsed = page.parsed
    card = _Scorecard()

    if not parsed.title:
        card.deduct(30, "Missing <title>")
    elif not 10 <= len(parsed.title) <= 60:
        card.deduct(10, f"Title length {len(parsed.title)} outside 10-60 characters")

    if not parsed.meta_description:
        card.deduct(25, "Missing meta description")
    elif not 50 <= len(parsed.meta_description) <= 160:
        card.deduct(
            10,
            f"Meta description length {len(parsed.meta_description)} outside 50-160 characters",
        )

    if parsed.h1_count == 0:
        card.deduct(20, "No <h1> heading")
    elif parsed.h1_count > 1:
        card.deduct(10, f"{parsed.h1_count} <h1> headings, expected one")

    if not parsed.canonical:
        card.deduct(10, "No canonical link")

    return card.report(
        title=parsed.title,
        meta_description=parsed.meta_description,
        h1_count=parsed.h1_count,
        links=parsed.links,
    )


@register_analyzer("performance")
def analyze_performance(page: AnalyzedPage) -> CategoryReport:
    snapshot, parsed = page.snapshot, page.parsed
    card = _Scorecard()

    if snapshot.elapsed_ms > 3000:
        card.deduct(40, f"Slow response: {snapshot.elapsed_ms:.0f} ms")
    elif snapshot.elapsed_ms > 1000:
        card.deduct(20, f"Response took {snapshot.elapsed_ms:.0f} ms")

    if snapshot.size_bytes > 1_000_000:
        card.deduct(20, f"Large document: {snapshot.size_bytes} bytes")

    if parsed.scripts > 15:
        card.deduct(15, f"{parsed.scripts} external scripts")
    if parsed.stylesheets > 5:
        card.deduct(10, f"{parsed.stylesheets} stylesheets")

    if "content-encoding" not in snapshot.headers:
        card.deduct(15, "Response is not compressed")

    return card.report(
        response_time_ms=snapshot.elapsed_ms,
        size_bytes=snapshot.size_bytes,
        scripts=parsed.scripts,
        stylesheets=parsed.stylesheets,
        compression=snapshot.headers.get("content-encoding"),
    )


# Header name -> (points, issue)
SECURITY_HEADERS: dict[str, tuple[int, str]] = {
    "strict-transport-security": (15, "Missing Strict-Transport-Security header"),
    "content-security-policy": (15, "Missing Content-Security-Policy header"),
    "x-frame-options": (10, "Missing X-Frame-Options header"),
    "x-content-type-options": (10, "Missing X-Content-Type-Options header"),
    "referrer-policy": (5, "Missing Referrer-Policy header"),
}


@register_analyzer("security")
def analyze_security(page: AnalyzedPage) -> CategoryReport:
    snapshot = page.snapshot
    card = _Scorecard()

    if not snapshot.is_https:
        card.deduct(45, "Page is not served over HTTPS")

    present = []
    for header, (points, issue) in SECURITY_HEADERS.items():
        if header in snapshot.headers:
            present.append(header)
        else:
            card.deduct(points, issue)

    return card.report(https=snapshot.is_https, security_headers=present)


@register_analyzer("accessibility")
def analyze_accessibility(page: AnalyzedPage) -> CategoryReport:
    parsed = page.parsed
    card = _Scorecard()

    if not parsed.lang:
        card.deduct(20, "Missing lang attribute on <html>")
    if not parsed.title:
        card.deduct(15, "Missing <title>")
    if not parsed.has_viewport:
        card.deduct(15, "Missing viewport meta tag")

    if parsed.images_missing_alt:
        ratio = parsed.images_missing_alt / parsed.images
        card.deduct(
            max(5, round(30 * ratio)),
            f"{parsed.images_missing_alt} of {parsed.images} images without alt text",
        )

    if parsed.inputs_unlabeled:
        card.deduct(
            min(20, 5 * parsed.inputs_unlabeled),
            f"{parsed.inputs_unlabeled} form fields without a label",
        )

    return card.report(
        lang=parsed.lang,
        images=parsed.images,
        images_missing_alt=parsed.images_missing_alt,
        inputs=parsed.inputs,
        inputs_unlabeled=parsed.inputs_unlabeled,
    )
