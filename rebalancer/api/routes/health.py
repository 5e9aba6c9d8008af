"""
Health check routes.

Probes always succeed: they report that the process is up, not the state of
its loops or stores.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import Response

from rebalancer import __version__
from rebalancer.observability.metrics import get_metrics
from rebalancer.types.api import HealthResponse, ReadyResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Report that the process is alive.",
)
async def health_check(request: Request) -> HealthResponse:
    """
    Kubernetes liveness probe endpoint.

    Returns:
        HealthResponse with the process role and identity.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        role=request.app.state.role,
        worker_id=request.app.state.worker_id,
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/ready",
    response_model=ReadyResponse,
    summary="Readiness check",
    description="Report that the process is ready.",
)
async def readiness_check() -> ReadyResponse:
    """Kubernetes readiness probe endpoint."""
    return ReadyResponse(ready=True)


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics.

    Returns:
        Prometheus-formatted metrics.
    """
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )
