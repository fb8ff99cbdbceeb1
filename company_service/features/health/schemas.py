"""Pydantic schemas for the health endpoints."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Basic health response: the process is up and serving requests.

    Example:
        ```json
        {
            "status": "ok",
            "service": "company-service",
            "version": "1.0.0",
            "timestamp": "2025-01-01T00:00:00Z",
            "uptime_seconds": 12.5
        }
        ```
    """

    status: str = Field(default="ok", description="Always 'ok' when the process responds")
    service: str = Field(min_length=1, max_length=100, description="Service name")
    version: str = Field(min_length=1, max_length=50, description="Service version")
    timestamp: datetime = Field(description="Check timestamp")
    uptime_seconds: float = Field(ge=0.0, description="Seconds since application startup")


class LivenessResponse(BaseModel):
    """Kubernetes liveness probe response."""

    alive: bool = Field(description="Liveness status")
    timestamp: datetime = Field(description="Check timestamp")
    service: str = Field(min_length=1, max_length=100, description="Service name")


class CheckDetail(BaseModel):
    """Result of one dependency check."""

    status: HealthStatus
    message: str = ""
    latency_ms: float = Field(default=0.0, ge=0.0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ReadinessResponse(BaseModel):
    """Kubernetes readiness probe response.

    Returns 200 if ready, 503 if not ready.

    Example:
        ```json
        {
            "ready": false,
            "status": "not_ready",
            "checks": {
                "messaging": {"status": "unhealthy", "message": "Subscriber not consuming"}
            },
            "timestamp": "2025-01-01T00:00:00Z"
        }
        ```
    """

    ready: bool = Field(description="Overall readiness status")
    status: str = Field(description="'ready' or 'not_ready'")
    checks: dict[str, CheckDetail] = Field(
        default_factory=dict, description="Individual dependency checks"
    )
    timestamp: datetime = Field(description="Check timestamp")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ready": True,
                "status": "ready",
                "checks": {"messaging": {"status": "healthy", "message": "Subscriber consuming"}},
                "timestamp": "2025-01-01T00:00:00Z",
            }
        }
    )
