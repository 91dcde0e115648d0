"""Pydantic v2 response models for the service endpoints."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(tz=timezone.utc)


BackendState = Literal["uninitialized", "connecting", "ready", "degraded", "failed", "closed"]


class BackendStatus(BaseModel):
    """Connection state of one datastore."""

    state: BackendState
    critical: bool
    healthy: bool = False
    error: str | None = None


class LivenessResponse(BaseModel):
    status: Literal["ok"] = "ok"


class ReadinessResponse(BaseModel):
    """Readiness report across all datastores."""

    status: Literal["ready", "degraded"]
    checks: dict[str, BackendStatus] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)


class ServiceInfo(BaseModel):
    service: str
    version: str
    environment: str
