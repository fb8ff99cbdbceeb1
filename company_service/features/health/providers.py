"""Health check providers.

A provider reports the state of one dependency. The readiness probe asks every
registered provider and is ready only when all of them are healthy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import time
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from company_service.features.health.schemas import HealthStatus

if TYPE_CHECKING:
    from company_service.infra.messaging.runtime import MessagingRuntime

logger = logging.getLogger(__name__)


@dataclass
class HealthCheckResult:
    """Result from a single health check.

    Attributes:
        status: Health status (HEALTHY, DEGRADED, UNHEALTHY)
        message: Human-readable status message
        latency_ms: Check duration in milliseconds
        metadata: Additional provider-specific metadata
    """

    status: HealthStatus
    message: str = ""
    latency_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return self.status is HealthStatus.HEALTHY


@runtime_checkable
class HealthProvider(Protocol):
    """Protocol for health check providers."""

    @property
    def name(self) -> str: ...

    async def check_health(self) -> HealthCheckResult: ...


class MessagingHealthProvider:
    """Reports the subscriber's readiness flag.

    The flag is maintained by the connection state machine, so the check is a
    read and never touches the broker.

    Example:
        provider = MessagingHealthProvider(runtime)
        result = await provider.check_health()
    """

    def __init__(self, runtime: MessagingRuntime) -> None:
        self._runtime = runtime

    @property
    def name(self) -> str:
        """Return provider name."""
        return "messaging"

    async def check_health(self) -> HealthCheckResult:
        start_time = time.perf_counter()
        runtime = self._runtime

        if not runtime.enabled:
            return HealthCheckResult(
                status=HealthStatus.UNHEALTHY,
                message="Messaging disabled: RabbitMQ not configured",
                latency_ms=(time.perf_counter() - start_time) * 1000,
                metadata={"enabled": False, "connected": False},
            )

        subscriber = runtime.subscriber
        publisher = runtime.publisher
        ready = runtime.is_ready()
        metadata: dict[str, Any] = {
            "enabled": True,
            "connected": ready,
            "subscriber_state": str(subscriber.state) if subscriber else None,
            "publisher_state": str(publisher.state) if publisher else None,
        }
        if subscriber is not None:
            metadata["reconnect_attempts"] = subscriber.supervisor.attempts
            metadata["reconnect_exhausted"] = subscriber.supervisor.exhausted

        if ready:
            status, message = HealthStatus.HEALTHY, "Subscriber consuming"
        else:
            status, message = HealthStatus.UNHEALTHY, "Subscriber not consuming"
            logger.debug("Messaging not ready", extra=metadata)

        return HealthCheckResult(
            status=status,
            message=message,
            latency_ms=(time.perf_counter() - start_time) * 1000,
            metadata=metadata,
        )


__all__ = ["HealthCheckResult", "HealthProvider", "MessagingHealthProvider"]
