"""Explicit owner of both messaging directions.

Constructed once at startup and stored on the application state; nothing in
the messaging layer is a module-level singleton. When no broker URL is
configured the runtime is disabled: publishes are dropped with a warning and
readiness reports false.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from company_service.infra.messaging.exceptions import PublishDropError
from company_service.infra.messaging.publisher import EventPublisher
from company_service.infra.messaging.subscriber import EventSubscriber

if TYPE_CHECKING:
    from company_service.core.settings.rabbit import RabbitSettings
    from company_service.infra.messaging.envelope import EventEnvelope
    from company_service.infra.messaging.handlers import EventHandlerRegistry

logger = logging.getLogger(__name__)


class MessagingRuntime:
    """Holds the publisher and the subscriber and sequences their lifecycle.

    Example:
        runtime = MessagingRuntime.from_settings(get_rabbit_settings(), handlers)
        await runtime.start()
        await runtime.publish("company.created", envelope)
        await runtime.close()
    """

    def __init__(
        self,
        publisher: EventPublisher | None = None,
        subscriber: EventSubscriber | None = None,
    ) -> None:
        self.publisher = publisher
        self.subscriber = subscriber

    @classmethod
    def from_settings(
        cls,
        settings: RabbitSettings,
        handlers: EventHandlerRegistry,
        **kwargs,
    ) -> MessagingRuntime:
        """Build the runtime, or a disabled one when RabbitMQ is not configured."""
        if not settings.is_configured:
            logger.warning("RabbitMQ not configured - messaging features disabled")
            return cls()
        logger.info(
            "RabbitMQ messaging configured",
            extra={
                "url": settings.sanitized_url,
                "inbound_namespace": settings.inbound_namespace,
                "max_retries": settings.max_retries,
                "retry_delay_seconds": settings.retry_delay_seconds,
            },
        )
        return cls(
            publisher=EventPublisher.from_settings(settings, **kwargs),
            subscriber=EventSubscriber.from_settings(settings, handlers, **kwargs),
        )

    @property
    def enabled(self) -> bool:
        return self.publisher is not None or self.subscriber is not None

    async def start(self) -> None:
        """Start the publisher, then the subscriber.

        Unreachable brokers do not fail startup; reconnects are scheduled in
        the background.

        Raises:
            TopologyError: If the broker holds conflicting definitions.
        """
        if self.publisher is not None:
            await self.publisher.start()
        if self.subscriber is not None:
            await self.subscriber.start()
        logger.info(
            "Messaging started",
            extra={
                "publisher_ready": self.publisher is not None and self.publisher.is_ready(),
                "subscriber_ready": self.is_ready(),
            },
        )

    async def close(self) -> None:
        """Close the subscriber first, then the publisher."""
        if self.subscriber is not None:
            await self.subscriber.close()
        if self.publisher is not None:
            await self.publisher.close()

    def is_ready(self) -> bool:
        """Readiness flag of the subscriber; false when messaging is disabled."""
        return self.subscriber is not None and self.subscriber.is_ready()

    async def publish(self, routing_key: str, envelope: EventEnvelope) -> None:
        """Publish through the publisher; drop with a warning when disabled."""
        if self.publisher is None:
            drop = PublishDropError(
                "Messaging disabled, event dropped",
                extra={"routing_key": routing_key, "event_type": envelope.event_type},
            )
            logger.warning(drop.detail, extra=drop.extra)
            return
        await self.publisher.publish(routing_key, envelope)


__all__ = ["MessagingRuntime"]
