"""Outbound event publisher.

Publishing is fire-and-forget from the caller's point of view: without a
ready channel the event is dropped with a warning, and broker-side failures
are logged rather than raised. Nothing is buffered; there is no outbox.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
import uuid

from aio_pika import DeliveryMode, Message

from company_service.infra.messaging.client import BROKER_ERRORS, BrokerClient
from company_service.infra.messaging.conventions import OUTBOUND_EXCHANGE_NAME
from company_service.infra.messaging.envelope import CONTENT_ENCODING, CONTENT_TYPE, EventEnvelope
from company_service.infra.messaging.exceptions import PublishDropError
from company_service.infra.messaging.topology import declare_outbound_exchange

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractExchange

    from company_service.core.settings.rabbit import RabbitSettings

logger = logging.getLogger(__name__)


class EventPublisher(BrokerClient):
    """Publishes event envelopes to the outbound topic exchange.

    Example:
        publisher = EventPublisher.from_settings(get_rabbit_settings())
        await publisher.start()
        await publisher.publish("company.created", envelope)
    """

    role = "publisher"

    def __init__(self, url: str, **kwargs) -> None:
        super().__init__(url, **kwargs)
        self._exchange: AbstractExchange | None = None

    @classmethod
    def from_settings(cls, settings: RabbitSettings, **kwargs) -> EventPublisher:
        return cls(
            settings.get_url(),
            name=settings.connection_name,
            heartbeat=settings.heartbeat,
            timeout=settings.connection_timeout,
            reconnect_base_delay=settings.reconnect_base_delay,
            reconnect_max_attempts=settings.reconnect_max_attempts,
            **kwargs,
        )

    def is_ready(self) -> bool:
        return self._exchange is not None and super().is_ready()

    async def publish(self, routing_key: str, envelope: EventEnvelope) -> None:
        """Publish an envelope with persistent delivery.

        Never raises for broker conditions: a missing channel drops the event,
        a failed publish is logged.
        """
        exchange = self._exchange
        if exchange is None or not self.is_ready():
            drop = PublishDropError(
                "RabbitMQ channel not available, event dropped",
                extra={"routing_key": routing_key, "event_type": envelope.event_type},
            )
            logger.warning(drop.detail, extra=drop.extra)
            return

        message = Message(
            envelope.encode(),
            content_type=CONTENT_TYPE,
            content_encoding=CONTENT_ENCODING,
            delivery_mode=DeliveryMode.PERSISTENT,
            message_id=str(uuid.uuid4()),
            timestamp=envelope.timestamp,
            type=envelope.event_type,
        )
        try:
            await exchange.publish(message, routing_key=routing_key)
        except BROKER_ERRORS as exc:
            logger.warning(
                "Failed to publish event",
                extra={
                    "routing_key": routing_key,
                    "event_type": envelope.event_type,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return

        logger.info(
            "Published event",
            extra={
                "exchange": OUTBOUND_EXCHANGE_NAME,
                "routing_key": routing_key,
                "event_type": envelope.event_type,
                "message_id": message.message_id,
            },
        )

    async def _open(self, channel: AbstractChannel) -> None:
        self._exchange = await declare_outbound_exchange(channel)
        self._connection.mark_topology_ready()

    def _forget(self) -> None:
        self._exchange = None


__all__ = ["EventPublisher"]
