"""
API request and response type definitions.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, HttpUrl

from sitescan.constants import AnalysisType, JobStatus


class CreateAnalysisRequest(BaseModel):
    """Request body for submitting a website analysis."""

    url: HttpUrl = Field(..., description="Page to analyze (http or https)")
    analysis_type: AnalysisType = Field(
        default=AnalysisType.FULL, description="Which analysis to run"
    )
    max_attempts: int | None = Field(
        default=None, ge=1, le=10, description="Maximum execution attempts"
    )
    analysis_id: str | None = Field(
        default=None, description="Caller-side identifier echoed in the result"
    )
    options: dict[str, Any] = Field(default_factory=dict)


class CreateAnalysisResponse(BaseModel):
    """Response body after queueing an analysis."""

    job_id: str
    status: JobStatus
    analysis_type: AnalysisType
    url: str
    message: str = "Analysis queued"


class JobResponse(BaseModel):
    """Full job details response."""

    id: str
    type: str
    payload: dict[str, Any]
    status: JobStatus
    attempts: int
    max_attempts: int
    created_at: datetime
    started_at: datetime | None
    completed_at: datetime | None
    next_attempt_at: datetime | None
    error: str | None
    result: Any = None


class CleanupResponse(BaseModel):
    """Result of a manual cleanup sweep."""

    removed: int


class LoginRequest(BaseModel):
    """Admin login request."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    queue: str
    timestamp: datetime


class TokenValidationResponse(BaseModel):
    """Result of validating an admin token."""

    valid: bool = True
    username: str
    role: str


class DeleteAnalysisResponse(BaseModel):
    """Result of deleting a finished analysis."""

    id: str
    deleted: bool = True


class PopularUrl(BaseModel):
    """A URL and how often it was submitted."""

    url: str
    count: int
    last_analyzed: datetime


class RecentAnalysis(BaseModel):
    """A completed analysis with its overall score."""

    id: str
    url: str
    score: int
    completed_at: datetime


class ErrorCount(BaseModel):
    """Failed analyses sharing one error message."""

    error: str
    count: int


class ErrorStats(BaseModel):
    total_errors: int
    errors_by_type: list[ErrorCount]


class PerformanceMetrics(BaseModel):
    success_rate: float = Field(..., description="Completed share of finished analyses, in percent")
    average_analysis_seconds: float = Field(
        ..., description="Mean time from submission to completion"
    )


class AnalysisStats(BaseModel):
    """Admin dashboard statistics over the analyses currently held in memory."""

    total_analyses: int
    today_analyses: int
    popular_urls: list[PopularUrl]
    recent_analyses: list[RecentAnalysis]
    error_stats: ErrorStats
    performance_metrics: PerformanceMetrics
