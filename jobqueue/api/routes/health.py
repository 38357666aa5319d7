"""
Health check routes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy import text

from jobqueue import __version__
from jobqueue.db import JobStore, get_job_store
from jobqueue.errors import StoreUnavailableError
from jobqueue.observability.metrics import get_metrics
from jobqueue.types.api import HealthResponse

router = APIRouter(tags=["Health"])


async def _database_reachable(store: JobStore) -> bool:
    try:
        await store.execute_query(text("SELECT 1"))
    except StoreUnavailableError:
        return False
    return True


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and database connection.",
)
async def health_check(
    store: JobStore = Depends(get_job_store),
) -> HealthResponse:
    """
    Perform a health check.

    Checks database connectivity and returns service status.

    Args:
        store: The job store.

    Returns:
        HealthResponse with service status.
    """
    db_status = "healthy" if await _database_reachable(store) else "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        version=__version__,
        database=db_status,
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the service is ready to receive traffic.",
)
async def readiness_check(
    store: JobStore = Depends(get_job_store),
) -> dict:
    """
    Kubernetes readiness probe endpoint.

    Args:
        store: The job store.

    Returns:
        Ready status.
    """
    return {"ready": await _database_reachable(store)}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """
    Kubernetes liveness probe endpoint.

    Returns:
        Alive status.
    """
    return {"alive": True}


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
