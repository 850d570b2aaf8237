"""
Health check endpoints.

Provides liveness and readiness probes for container orchestration.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from .config import settings
from .models import HealthResponse
from .store import get_store

logger = logging.getLogger("snxai.health")

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint",
    description="Returns service health status and configuration info"
)
async def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        service=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        store=settings.STORE,
        model_provider=settings.MODEL_PROVIDER,
    )


@router.get("/health/live", summary="Liveness probe")
async def liveness():
    return {"status": "alive"}


@router.get(
    "/health/ready",
    summary="Readiness probe",
    description="Check that the store is reachable and a model backend is configured"
)
async def readiness():
    """
    Kubernetes readiness probe.

    Returns 200 if ready, 503 if not ready.
    """
    checks = {
        "store": get_store().health_check(),
        "model": settings.model_api_configured(),
    }

    if not all(checks.values()):
        logger.warning("Readiness check failed: %s", checks)
        return JSONResponse(status_code=503, content={"status": "not_ready", "checks": checks})

    return {"status": "ready", "checks": checks}
