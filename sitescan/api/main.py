"""
FastAPI application entry point.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sitescan import __version__
from sitescan.api.login_guard import LoginGuard
from sitescan.api.routes import admin_router, analyses_router, health_router
from sitescan.config import get_settings
from sitescan.observability.logging import setup_logging
from sitescan.observability.metrics import setup_metrics
from sitescan.observability.tracing import instrument_fastapi, setup_tracing
from sitescan.queue.job_queue import Executor, JobQueue
from sitescan.queue.listeners import JobEventLog, log_job_completed, log_job_failed
from sitescan.reaper.main import Reaper
from sitescan.worker.handlers import AnalysisExecutor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Starts the cleanup reaper on startup; on shutdown stops it and waits
    for in-flight analyses.
    """
    setup_logging()
    setup_metrics()
    setup_tracing()

    reaper: Reaper = app.state.reaper
    reaper_task = asyncio.create_task(reaper.start(), name="reaper")
    logger.info("Application started")

    yield

    await reaper.stop()
    await reaper_task
    await app.state.queue.shutdown()
    logger.info("Application shutdown")


def create_app(executor: Executor | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    The queue is built here rather than at import time so each app (and
    each test) owns an isolated instance.

    Args:
        executor: Executor for the job queue. Defaults to AnalysisExecutor.

    Returns:
        FastAPI: The configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="SiteScan API",
        description="Website analysis service with an in-process job queue",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    queue = JobQueue(executor=executor or AnalysisExecutor())
    queue.on_completed(log_job_completed)
    queue.on_failed(log_job_failed)

    event_log = JobEventLog()
    event_log.attach(queue)

    app.state.queue = queue
    app.state.event_log = event_log
    app.state.reaper = Reaper(queue)
    app.state.login_guard = LoginGuard(
        max_attempts=settings.admin_max_login_attempts,
        lockout_seconds=settings.admin_lockout_minutes * 60,
        usernames=[settings.admin_username],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(analyses_router)
    app.include_router(admin_router)

    instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()

    uvicorn.run(
        "sitescan.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
