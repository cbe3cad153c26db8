"""
Analysis submission and status routes.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from sitescan.api.deps import QueueDep
from sitescan.constants import API_V1_PREFIX
from sitescan.queue.job_queue import QueueClosedError
from sitescan.types.api import (
    CreateAnalysisRequest,
    CreateAnalysisResponse,
    JobResponse,
)
from sitescan.types.job import Job

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/analyses", tags=["Analyses"])


def job_to_response(job: Job) -> JobResponse:
    """Convert a Job snapshot to a JobResponse."""
    return JobResponse(
        id=job.id,
        type=job.type,
        payload=job.payload,
        status=job.status,
        attempts=job.attempts,
        max_attempts=job.max_attempts,
        created_at=job.created_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
        next_attempt_at=job.next_attempt_at,
        error=job.error,
        result=job.result,
    )


@router.post(
    "",
    response_model=CreateAnalysisResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit an analysis",
    description="Queue a website analysis. Returns immediately with the job id.",
)
async def create_analysis(
    request: CreateAnalysisRequest,
    queue: QueueDep,
) -> CreateAnalysisResponse:
    """
    Queue an analysis job.

    The analysis runs in the background; poll `GET /v1/analyses/{job_id}`
    for its status and result.
    """
    url = str(request.url)
    try:
        job_id = queue.submit(
            request.analysis_type.value,
            {
                "url": url,
                "analysis_id": request.analysis_id,
                "options": request.options,
            },
            max_attempts=request.max_attempts,
        )
    except QueueClosedError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Analysis queue is shutting down",
        ) from e

    job = queue.get_status(job_id)

    return CreateAnalysisResponse(
        job_id=job_id,
        status=job.status,
        analysis_type=request.analysis_type,
        url=url,
    )


@router.get(
    "/{job_id}",
    response_model=JobResponse,
    summary="Get analysis status",
    description="Get the status and, once completed, the result of an analysis job.",
)
async def get_analysis(job_id: str, queue: QueueDep) -> JobResponse:
    """
    Look up an analysis job.

    Raises:
        HTTPException: 404 if the job is unknown or was reclaimed by cleanup.
    """
    job = queue.get_status(job_id)

    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found",
        )

    return job_to_response(job)
