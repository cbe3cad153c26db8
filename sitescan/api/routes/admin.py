"""
Admin routes: login, analysis statistics and queue administration.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from sitescan.api.auth import CurrentAdmin, create_access_token, verify_admin_credentials
from sitescan.api.deps import EventLogDep, LoginGuardDep, QueueDep
from sitescan.api.routes.analyses import job_to_response
from sitescan.config import get_settings
from sitescan.constants import API_V1_PREFIX, JobStatus
from sitescan.queue.job_queue import JobActiveError
from sitescan.queue.stats import build_analysis_stats
from sitescan.types.api import (
    AnalysisStats,
    CleanupResponse,
    DeleteAnalysisResponse,
    JobResponse,
    LoginRequest,
    TokenResponse,
    TokenValidationResponse,
)
from sitescan.types.events import JobEvent
from sitescan.types.job import QueueStats

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/admin", tags=["Admin"])


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Admin login",
    description="Exchange admin credentials for a JWT access token.",
)
async def login(request: LoginRequest, guard: LoginGuardDep) -> TokenResponse:
    """
    Authenticate the admin account.

    Raises:
        HTTPException: 423 while the username is locked, 401 on bad credentials.
    """
    allowed, retry_after = guard.check(request.username)
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail="Account is locked, try again later",
            headers={"Retry-After": str(int(retry_after) + 1)},
        )

    if not verify_admin_credentials(request.username, request.password):
        guard.record_failure(request.username)
        logger.warning("Admin login failed", extra={"username": request.username})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
        )

    guard.record_success(request.username)
    logger.info("Admin logged in", extra={"username": request.username})

    settings = get_settings()
    return TokenResponse(
        access_token=create_access_token(username=request.username),
        expires_in=settings.api_access_token_expire_minutes * 60,
    )


@router.get(
    "/queue/stats",
    response_model=QueueStats,
    summary="Queue statistics",
    description="Job counts per status, recomputed on every call.",
)
async def queue_stats(admin: CurrentAdmin, queue: QueueDep) -> QueueStats:
    return queue.get_stats()


@router.post(
    "/queue/cleanup",
    response_model=CleanupResponse,
    summary="Run cleanup",
    description="Remove finished jobs older than the retention window.",
)
async def queue_cleanup(admin: CurrentAdmin, queue: QueueDep) -> CleanupResponse:
    removed = queue.cleanup()
    logger.info("Manual cleanup", extra={"username": admin.username, "removed": removed})
    return CleanupResponse(removed=removed)


@router.get(
    "/queue/events",
    response_model=list[JobEvent],
    summary="Recent job events",
    description="Most recent completed/failed job events, newest first.",
)
async def queue_events(
    admin: CurrentAdmin,
    event_log: EventLogDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    status_filter: Annotated[JobStatus | None, Query(alias="status")] = None,
) -> list[JobEvent]:
    return event_log.recent(limit=limit, status=status_filter)


@router.get(
    "/validate",
    response_model=TokenValidationResponse,
    summary="Validate token",
    description="Check that the bearer token is a valid, unexpired admin token.",
)
async def validate_token(admin: CurrentAdmin) -> TokenValidationResponse:
    return TokenValidationResponse(username=admin.username, role=admin.role)


@router.get(
    "/stats",
    response_model=AnalysisStats,
    summary="Analysis statistics",
    description="Totals, popular URLs, recent scores and error breakdown for held analyses.",
)
async def analysis_stats(admin: CurrentAdmin, queue: QueueDep) -> AnalysisStats:
    return build_analysis_stats(queue.list_jobs())


@router.get(
    "/analyses/{job_id}",
    response_model=JobResponse,
    summary="Get analysis details",
)
async def get_analysis_detail(job_id: str, admin: CurrentAdmin, queue: QueueDep) -> JobResponse:
    job = queue.get_status(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found",
        )
    return job_to_response(job)


@router.delete(
    "/analyses/{job_id}",
    response_model=DeleteAnalysisResponse,
    summary="Delete an analysis",
    description="Remove a completed or failed analysis. Queued and running ones are refused.",
)
async def delete_analysis(
    job_id: str, admin: CurrentAdmin, queue: QueueDep
) -> DeleteAnalysisResponse:
    """
    Delete a finished analysis.

    Raises:
        HTTPException: 404 if unknown, 409 if still pending or processing.
    """
    try:
        removed = queue.remove(job_id)
    except JobActiveError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from e

    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found",
        )

    logger.info("Analysis deleted", extra={"username": admin.username, "job_id": job_id})
    return DeleteAnalysisResponse(id=job_id)
