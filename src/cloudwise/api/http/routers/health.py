"""Liveness and readiness endpoints."""

from typing import Any

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from cloudwise.api.http.app_data import ApplicationDependencies

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health() -> dict[str, str]:
    """Liveness probe: 200 as long as the process is serving requests."""
    return {"status": "healthy", "service": "api"}


@router.get("/ready", response_model=None)
async def readiness(request: Request) -> dict[str, Any] | JSONResponse:
    """Readiness probe: 503 until the database answers."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies

    db_healthy = app_deps.database_service.health_check()
    body = {
        "status": "ready" if db_healthy else "not_ready",
        "checks": {"database": "healthy" if db_healthy else "unhealthy"},
    }
    if not db_healthy:
        return JSONResponse(status_code=503, content=body)
    return body
