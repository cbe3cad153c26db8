"""
Health check routes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import Response

from sitescan import __version__
from sitescan.api.deps import QueueDep
from sitescan.observability.metrics import get_metrics
from sitescan.types.api import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and the job queue.",
)
async def health_check(queue: QueueDep) -> HealthResponse:
    """
    Perform a health check.

    Reports degraded once the queue has been shut down.
    """
    queue_status = "healthy" if queue.running else "stopped"

    return HealthResponse(
        status="healthy" if queue_status == "healthy" else "degraded",
        version=__version__,
        queue=queue_status,
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the service is ready to receive traffic.",
)
async def readiness_check(queue: QueueDep) -> dict:
    """Ready while the queue is accepting work."""
    return {"ready": queue.running}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """Expose Prometheus metrics."""
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )
