"""
Type definitions for the analysis service.
Contains input/output type definitions for all functions, grouped by module.
"""

from sitescan.types.api import (
    AnalysisStats,
    CleanupResponse,
    CreateAnalysisRequest,
    CreateAnalysisResponse,
    DeleteAnalysisResponse,
    HealthResponse,
    JobResponse,
    LoginRequest,
    TokenResponse,
    TokenValidationResponse,
)
from sitescan.types.events import JobEvent
from sitescan.types.job import (
    Job,
    JobContext,
    QueueStats,
)

__all__ = [
    # API types
    "CreateAnalysisRequest",
    "CreateAnalysisResponse",
    "JobResponse",
    "CleanupResponse",
    "LoginRequest",
    "TokenResponse",
    "TokenValidationResponse",
    "DeleteAnalysisResponse",
    "AnalysisStats",
    "HealthResponse",
    # Job types
    "Job",
    "JobContext",
    "QueueStats",
    # Event types
    "JobEvent",
]
