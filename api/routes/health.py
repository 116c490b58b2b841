"""
Health Check Routes
===================

Kubernetes-compatible health and readiness endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from api import __version__
from api.schemas import HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the service",
)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint for load balancers and monitoring.

    Returns:
        HealthResponse with current service status
    """
    settings = getattr(request.app.state, "settings", None)
    checks = {
        "api": True,
        "agent": getattr(request.app.state, "agent", None) is not None,
        "project_root": settings is not None and settings.project_root.is_dir(),
    }

    status = HealthStatus.HEALTHY if all(checks.values()) else HealthStatus.DEGRADED

    return HealthResponse(
        status=status,
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Returns whether the service is ready to handle requests",
)
async def readiness_check(request: Request) -> ReadinessResponse:
    """
    Readiness check for Kubernetes.

    Returns:
        ReadinessResponse indicating readiness status
    """
    settings = getattr(request.app.state, "settings", None)
    checks = {
        "agent_loaded": getattr(request.app.state, "agent", None) is not None,
        "configuration_valid": settings is not None,
        "llm_configured": settings is not None
        and (settings.llm_provider == "mock" or bool(settings.llm_api_key)),
        "migration_configured": settings is not None and bool(settings.migration_commands),
    }

    return ReadinessResponse(
        ready=all(checks.values()),
        checks=checks,
    )


@router.get(
    "/live",
    summary="Liveness check",
    description="Simple liveness probe",
)
async def liveness_check() -> dict:
    """Simple endpoint to verify the process is running."""
    return {"status": "ok"}
