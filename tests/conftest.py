"""
Pytest configuration and shared fixtures.
"""

import asyncio
import os
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

# Set environment BEFORE any imports that read settings
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "test-password"
os.environ["API_SECRET_KEY"] = "test-secret-key"
os.environ["LOG_FORMAT"] = "console"

from sitescan.api.auth import create_access_token  # noqa: E402
from sitescan.api.main import create_app  # noqa: E402
from sitescan.config import get_settings  # noqa: E402
from sitescan.queue.job_queue import JobQueue  # noqa: E402
from sitescan.types.job import JobContext  # noqa: E402

get_settings.cache_clear()


SAMPLE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>Example Domain for Testing</title>
  <meta name="description" content="An example page used to exercise every analyzer in the test suite.">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <link rel="canonical" href="https://example.com/">
  <link rel="stylesheet" href="/site.css">
  <script src="/app.js"></script>
</head>
<body>
  <h1>Example</h1>
  <img src="/logo.png" alt="Logo">
  <img src="/banner.png">
  <a href="/about">About</a>
  <form>
    <label for="email">Email</label>
    <input id="email" type="email">
    <input id="name" type="text">
    <input type="hidden" name="token">
  </form>
</body>
</html>
"""

SECURE_HEADERS = {
    "content-type": "text/html; charset=utf-8",
    "content-encoding": "identity",
    "strict-transport-security": "max-age=31536000",
    "content-security-policy": "default-src 'self'",
    "x-frame-options": "DENY",
    "x-content-type-options": "nosniff",
    "referrer-policy": "no-referrer",
}


async def wait_for(
    predicate: Callable[[], bool],
    timeout: float = 2.0,
    interval: float = 0.005,
) -> None:
    """Poll until predicate() is true or fail the test after timeout."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            pytest.fail("Condition not met before timeout")
        await asyncio.sleep(interval)


class RecordingExecutor:
    """
    Fake executor recording every call.

    Fails while `fail_first[payload["key"]]` covers the attempt number.
    Payloads with {"fail": True}, or a URL containing "fail", always fail,
    as does every call when `always_fail` is set.
    """

    def __init__(self, delay: float = 0.0, always_fail: bool = False):
        self.delay = delay
        self.always_fail = always_fail
        self.fail_first: dict[str, int] = {}
        self.calls: list[JobContext] = []

    def calls_for(self, job_id: str) -> list[JobContext]:
        return [call for call in self.calls if call.job_id == job_id]

    async def __call__(self, context: JobContext) -> dict[str, Any]:
        self.calls.append(context)
        if self.delay:
            await asyncio.sleep(self.delay)

        url = str(context.payload.get("url", ""))
        if self.always_fail or context.payload.get("fail") or "fail" in url:
            raise RuntimeError(f"boom {context.attempt}")
        if context.attempt <= self.fail_first.get(context.payload.get("key", ""), 0):
            raise RuntimeError(f"transient {context.attempt}")

        return {"echo": context.payload, "attempt": context.attempt}


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest_asyncio.fixture
async def make_queue() -> AsyncGenerator[Callable[..., JobQueue]]:
    """Factory for queues with fast backoff; shuts every queue down afterwards."""
    queues: list[JobQueue] = []

    def factory(executor: Callable[[JobContext], Awaitable[Any]], **kwargs: Any) -> JobQueue:
        kwargs.setdefault("backoff_base_seconds", 0.005)
        queue = JobQueue(executor=executor, **kwargs)
        queues.append(queue)
        return queue

    yield factory

    for queue in queues:
        await queue.shutdown()


@pytest.fixture
def page_transport() -> httpx.MockTransport:
    """Transport serving SAMPLE_HTML with a full set of security headers."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/missing":
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=SAMPLE_HTML, headers=SECURE_HEADERS)

    return httpx.MockTransport(handler)


@pytest_asyncio.fixture
async def app(executor: RecordingExecutor) -> AsyncGenerator[FastAPI]:
    """Create a FastAPI app whose queue runs the recording executor."""
    app = create_app(executor=executor)
    yield app
    await app.state.queue.shutdown()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Create admin authentication headers for testing."""
    token = create_access_token(username="admin")
    return {"Authorization": f"Bearer {token}"}
