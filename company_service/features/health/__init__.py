"""Health check feature: liveness and readiness probes."""

from company_service.features.health.providers import (
    HealthCheckResult,
    HealthProvider,
    MessagingHealthProvider,
)
from company_service.features.health.router import router
from company_service.features.health.schemas import HealthStatus
from company_service.features.health.service import HealthService

__all__ = [
    "HealthCheckResult",
    "HealthProvider",
    "HealthService",
    "HealthStatus",
    "MessagingHealthProvider",
    "router",
]
