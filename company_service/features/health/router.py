"""Health check API endpoints.

- /health - Basic service info; always 200 while the process responds
- /health/live - Liveness probe
- /health/ready - Readiness probe; 503 while the subscriber is not consuming
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from company_service.features.health.schemas import (
    HealthResponse,
    LivenessResponse,
    ReadinessResponse,
)

# Must stay outside TYPE_CHECKING so FastAPI can resolve the Depends() metadata
from company_service.features.health.service import HealthServiceDep  # noqa: TC001

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "",
    response_model=HealthResponse,
    summary="Basic health check",
)
async def health_check(service: HealthServiceDep) -> HealthResponse:
    return HealthResponse(**service.info())


@router.get(
    "/live",
    response_model=LivenessResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe (Kubernetes)",
)
async def liveness_check(service: HealthServiceDep) -> LivenessResponse:
    """Returns 200 while the process is alive and responsive."""
    return LivenessResponse(**service.liveness())


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    responses={
        503: {"description": "Service not ready to accept traffic"},
    },
    summary="Readiness probe (Kubernetes)",
)
async def readiness_check(response: Response, service: HealthServiceDep) -> ReadinessResponse:
    """Kubernetes readiness probe endpoint.

    Note:
        Returns HTTP 503 if not ready, so the pod is taken out of the
        service endpoints while messaging is down.
    """
    result = await service.readiness()

    if not result["ready"]:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(**result)
