"""Health service aggregating the registered providers.

Example:
    >>> from company_service.features.health.service import HealthServiceDep
    >>>
    >>> @router.get("/health/ready")
    >>> async def ready(service: HealthServiceDep):
    ...     return await service.readiness()
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
import time
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends, Request

from company_service.core.services.base import BaseService
from company_service.features.health.providers import HealthCheckResult, MessagingHealthProvider
from company_service.features.health.schemas import HealthStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

    from company_service.core.settings.app import AppSettings
    from company_service.features.health.providers import HealthProvider


class HealthService(BaseService):
    """Runs health providers and shapes probe responses."""

    def __init__(
        self,
        settings: AppSettings,
        providers: Sequence[HealthProvider] = (),
        *,
        started_at: float | None = None,
    ) -> None:
        super().__init__()
        self._settings = settings
        self._providers = list(providers)
        self._started_at = started_at if started_at is not None else time.monotonic()

    def info(self) -> dict[str, Any]:
        return {
            "status": "ok",
            "service": self._settings.service_name,
            "version": self._settings.version,
            "timestamp": datetime.now(UTC),
            "uptime_seconds": max(time.monotonic() - self._started_at, 0.0),
        }

    def liveness(self) -> dict[str, Any]:
        return {
            "alive": True,
            "timestamp": datetime.now(UTC),
            "service": self._settings.service_name,
        }

    async def readiness(self) -> dict[str, Any]:
        """Ready only when every provider reports healthy."""
        results = await asyncio.gather(*(self._check(p) for p in self._providers))
        checks = {
            provider.name: {
                "status": result.status,
                "message": result.message,
                "latency_ms": result.latency_ms,
                "metadata": result.metadata,
            }
            for provider, result in zip(self._providers, results, strict=True)
        }
        ready = all(result.healthy for result in results)
        return {
            "ready": ready,
            "status": "ready" if ready else "not_ready",
            "checks": checks,
            "timestamp": datetime.now(UTC),
        }

    async def _check(self, provider: HealthProvider) -> HealthCheckResult:
        try:
            return await provider.check_health()
        except Exception as e:
            self.logger.warning(
                "Health check failed",
                extra={"provider": provider.name, "error": str(e)},
            )
            return HealthCheckResult(
                status=HealthStatus.UNHEALTHY,
                message=f"Health check error: {e}",
                metadata={"error": str(e)},
            )


def get_health_service(request: Request) -> HealthService:
    """Build the health service from the objects stored on app state."""
    state = request.app.state
    return HealthService(
        state.app_settings,
        [MessagingHealthProvider(state.messaging)],
        started_at=getattr(state, "started_at", None),
    )


HealthServiceDep = Annotated[HealthService, Depends(get_health_service)]

__all__ = ["HealthService", "HealthServiceDep", "get_health_service"]
