"""Health check endpoints for service monitoring and readiness probes."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from models.schemas import BackendStatus, LivenessResponse, ReadinessResponse
from services.lifecycle import DatastoreManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


def get_datastores(request: Request) -> DatastoreManager:
    """Return the DatastoreManager owned by the running application."""
    return request.app.state.datastores


@router.get("")
async def health_check() -> LivenessResponse:
    """Return basic service liveness status."""
    return LivenessResponse()


@router.get("/ready")
async def readiness_check(datastores: DatastoreManager = Depends(get_datastores)) -> JSONResponse:
    """Return live per-datastore health.

    Every usable datastore is checked on each request, so a cache or search
    backend that recovered after startup reports ready again. Responds 200
    only when every check passes; otherwise 503 with status ``degraded``.
    """
    checks: dict[str, BackendStatus] = {}
    for service in datastores.services:
        try:
            healthy = await service.check_health()
        except Exception as e:
            logger.error("%s health check error: %s", service.name, e)
            healthy = False
        error = service.last_error
        checks[service.name] = BackendStatus(
            state=service.state.value,
            critical=service.critical,
            healthy=healthy,
            error=f"{type(error).__name__}: {error}" if error is not None else None,
        )

    all_ok = all(status.healthy for status in checks.values())
    if not all_ok:
        logger.warning("Readiness degraded: %s", datastores.status())

    report = ReadinessResponse(status="ready" if all_ok else "degraded", checks=checks)
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content=report.model_dump(mode="json"),
    )
