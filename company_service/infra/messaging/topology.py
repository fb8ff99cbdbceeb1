"""Declaration of the consumer-side broker topology.

Layout::

    auth_events (topic) --<namespace>.*--> company_service_queue --> consumer
                                                  ^
                                                  | TTL expiry, via default exchange
    company_service_retry (direct) --retry--> company_service_queue.retry

    company_service_queue.dlq  <-- default exchange, routed by queue name

Every declaration is idempotent and runs again on every (re)connect. A durable
entity that already exists with different arguments makes the broker answer
PRECONDITION_FAILED; that is a deployment mismatch and is raised as
TopologyError, which is never retried.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any

from aio_pika import ExchangeType
from aio_pika.exceptions import ChannelPreconditionFailed

from company_service.infra.messaging.connection import CONNECT_ERRORS
from company_service.infra.messaging.conventions import (
    DEAD_LETTER_QUEUE_NAME,
    INBOUND_EXCHANGE_NAME,
    MAIN_QUEUE_NAME,
    OUTBOUND_EXCHANGE_NAME,
    RETRY_EXCHANGE_NAME,
    RETRY_QUEUE_NAME,
    RETRY_ROUTING_KEY,
    get_routing_key_pattern,
)
from company_service.infra.messaging.exceptions import BrokerConnectionError, TopologyError

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractQueue

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeclaredTopology:
    """Handles to the declared entities of one channel."""

    exchange: AbstractExchange
    retry_exchange: AbstractExchange
    main_queue: AbstractQueue
    retry_queue: AbstractQueue
    dead_letter_queue: AbstractQueue


class Topology:
    """Declares exchanges, queues and bindings for the subscriber.

    Example:
        topology = Topology(namespace="user", retry_delay_ms=5000)
        declared = await topology.setup(channel)
        await declared.main_queue.consume(on_message)
    """

    def __init__(
        self,
        *,
        namespace: str = "user",
        retry_delay_ms: int = 5000,
        prefetch_count: int = 1,
    ) -> None:
        self.namespace = namespace
        self.retry_delay_ms = retry_delay_ms
        self.prefetch_count = prefetch_count

    @property
    def binding_key(self) -> str:
        """Routing key pattern binding the main queue to the inbound exchange."""
        return get_routing_key_pattern(self.namespace)

    @property
    def retry_queue_arguments(self) -> dict[str, Any]:
        """Arguments of the retry queue: hold for the TTL, then back to the main queue."""
        return {
            "x-message-ttl": self.retry_delay_ms,
            "x-dead-letter-exchange": "",
            "x-dead-letter-routing-key": MAIN_QUEUE_NAME,
        }

    async def setup(self, channel: AbstractChannel) -> DeclaredTopology:
        """Declare the full topology on a channel and set the prefetch window.

        Raises:
            TopologyError: If an entity exists with conflicting parameters.
            BrokerConnectionError: If the channel is lost mid-declaration.
        """
        try:
            declared = await self._declare(channel)
        except ChannelPreconditionFailed as exc:
            raise TopologyError(
                f"Conflicting RabbitMQ topology: {exc}",
                extra={"queue": MAIN_QUEUE_NAME, "error_type": type(exc).__name__},
            ) from exc
        except CONNECT_ERRORS as exc:
            raise BrokerConnectionError(
                f"Channel lost while declaring topology: {exc}",
                extra={"error_type": type(exc).__name__},
            ) from exc

        logger.info(
            "RabbitMQ topology declared",
            extra={
                "exchange": INBOUND_EXCHANGE_NAME,
                "queue": MAIN_QUEUE_NAME,
                "binding_key": self.binding_key,
                "retry_delay_ms": self.retry_delay_ms,
            },
        )
        return declared

    async def _declare(self, channel: AbstractChannel) -> DeclaredTopology:
        exchange = await channel.declare_exchange(
            INBOUND_EXCHANGE_NAME, ExchangeType.TOPIC, durable=True
        )
        retry_exchange = await channel.declare_exchange(
            RETRY_EXCHANGE_NAME, ExchangeType.DIRECT, durable=True
        )

        retry_queue = await channel.declare_queue(
            RETRY_QUEUE_NAME, durable=True, arguments=self.retry_queue_arguments
        )
        await retry_queue.bind(retry_exchange, routing_key=RETRY_ROUTING_KEY)

        dead_letter_queue = await channel.declare_queue(DEAD_LETTER_QUEUE_NAME, durable=True)

        main_queue = await channel.declare_queue(MAIN_QUEUE_NAME, durable=True)
        await main_queue.bind(exchange, routing_key=self.binding_key)

        await channel.set_qos(prefetch_count=self.prefetch_count)

        return DeclaredTopology(
            exchange=exchange,
            retry_exchange=retry_exchange,
            main_queue=main_queue,
            retry_queue=retry_queue,
            dead_letter_queue=dead_letter_queue,
        )


async def declare_outbound_exchange(channel: AbstractChannel) -> AbstractExchange:
    """Declare the topic exchange company events are published to.

    Raises:
        TopologyError: If the exchange exists with a different type.
        BrokerConnectionError: If the channel is lost.
    """
    try:
        return await channel.declare_exchange(
            OUTBOUND_EXCHANGE_NAME, ExchangeType.TOPIC, durable=True
        )
    except ChannelPreconditionFailed as exc:
        raise TopologyError(
            f"Conflicting RabbitMQ exchange: {exc}",
            extra={"exchange": OUTBOUND_EXCHANGE_NAME},
        ) from exc
    except CONNECT_ERRORS as exc:
        raise BrokerConnectionError(
            f"Channel lost while declaring exchange: {exc}",
            extra={"exchange": OUTBOUND_EXCHANGE_NAME, "error_type": type(exc).__name__},
        ) from exc


__all__ = ["DeclaredTopology", "Topology", "declare_outbound_exchange"]
