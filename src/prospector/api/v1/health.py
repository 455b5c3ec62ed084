"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready). Readiness pings
HubSpot when sync is configured; without a token the service still serves
lead search and permits, so it reports ready with hubspot "not_configured".
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.prospector.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check. No external dependencies are checked."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: 200 when HubSpot answers (or is not configured), else 503."""
    checks: dict = {}
    service = getattr(request.app.state, "sync_service", None)
    if service is None:
        checks["hubspot"] = "not_configured"
    else:
        checks["hubspot"] = "ok" if await service.test_connection() else "error"

    checks["lead_search"] = (
        "ok" if getattr(request.app.state, "lead_search", None) is not None else "not_configured"
    )

    healthy = checks["hubspot"] != "error"
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if healthy else "degraded", "checks": checks},
    )
