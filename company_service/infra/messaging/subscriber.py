"""Inbound event subscriber.

Consumes the main queue one message at a time (prefetch 1) and settles every
delivery explicitly:

- handler success, or an event type with no handler: ack
- handler or decode failure with retry budget left: republish to the retry
  exchange with ``x-retry-count + 1``, then ack
- failure with the budget spent: publish to the dead-letter queue stamped with
  ``x-failed-reason``/``x-failed-at``, then ack
- the republish itself fails: reject with requeue so the broker redelivers

The original delivery is acked only after its successor is published, so a
crash between the two duplicates the message rather than losing it
(at-least-once; handlers are idempotent).

On close the consumer is cancelled first and the in-flight delivery is allowed
to settle before the channel goes away.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
import logging
from typing import TYPE_CHECKING, Any

from aio_pika import DeliveryMode, Message

from company_service.infra.logging import log_context
from company_service.infra.messaging.client import BROKER_ERRORS, BrokerClient
from company_service.infra.messaging.connection import ConnectionState
from company_service.infra.messaging.conventions import DEAD_LETTER_QUEUE_NAME, RETRY_ROUTING_KEY
from company_service.infra.messaging.envelope import CONTENT_ENCODING, CONTENT_TYPE, EventEnvelope
from company_service.infra.messaging.exceptions import (
    BrokerConnectionError,
    DecodeError,
    HandlerError,
    MessagingError,
)
from company_service.infra.messaging.retry import RetryDecision, RetryMetadata, RetryPolicy
from company_service.infra.messaging.topology import DeclaredTopology, Topology

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractIncomingMessage

    from company_service.core.settings.rabbit import RabbitSettings
    from company_service.infra.messaging.handlers import EventHandlerRegistry

logger = logging.getLogger(__name__)


class MessageOutcome(StrEnum):
    """How a delivery was settled."""

    ACKED = "acked"
    IGNORED = "ignored"
    RETRIED = "retried"
    DEAD_LETTERED = "dead_lettered"
    REQUEUED = "requeued"


class EventSubscriber(BrokerClient):
    """Consumes inbound events and dispatches them to registered handlers.

    Example:
        subscriber = EventSubscriber.from_settings(settings, handlers)
        await subscriber.start()
        assert subscriber.is_ready()
    """

    role = "subscriber"

    def __init__(
        self,
        url: str,
        handlers: EventHandlerRegistry,
        *,
        topology: Topology | None = None,
        retry_policy: RetryPolicy | None = None,
        drain_timeout: float = 30.0,
        **kwargs,
    ) -> None:
        super().__init__(url, **kwargs)
        self._handlers = handlers
        self._topology = topology or Topology()
        self._retry_policy = retry_policy or RetryPolicy()
        self._drain_timeout = drain_timeout
        self._declared: DeclaredTopology | None = None
        self._consumer_tag: str | None = None
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @classmethod
    def from_settings(
        cls,
        settings: RabbitSettings,
        handlers: EventHandlerRegistry,
        **kwargs,
    ) -> EventSubscriber:
        return cls(
            settings.get_url(),
            handlers,
            topology=Topology(
                namespace=settings.inbound_namespace,
                retry_delay_ms=settings.retry_delay_ms,
            ),
            retry_policy=RetryPolicy(
                max_retries=settings.max_retries,
                retry_delay_ms=settings.retry_delay_ms,
            ),
            name=settings.connection_name,
            heartbeat=settings.heartbeat,
            timeout=settings.connection_timeout,
            reconnect_base_delay=settings.reconnect_base_delay,
            reconnect_max_attempts=settings.reconnect_max_attempts,
            **kwargs,
        )

    @property
    def topology(self) -> Topology:
        return self._topology

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def is_ready(self) -> bool:
        """Readiness flag: true only while the consumer is registered."""
        return self._connection.state is ConnectionState.CONSUMING and super().is_ready()

    async def process(self, message: AbstractIncomingMessage) -> MessageOutcome:
        """Decode, dispatch and settle one delivery."""
        metadata = RetryMetadata.from_headers(message.headers)
        with log_context(
            message_id=message.message_id,
            routing_key=message.routing_key,
            retry_count=metadata.retry_count,
        ):
            try:
                envelope = EventEnvelope.decode(message.body)
            except DecodeError as exc:
                logger.warning("Failed to decode event", extra=exc.extra)
                return await self._handle_failure(message, metadata, exc)

            with log_context(event_type=envelope.event_type):
                handler = self._handlers.get(envelope.event_type)
                if handler is None:
                    logger.debug("No handler registered for event type, acknowledging")
                    await self._ack(message)
                    return MessageOutcome.IGNORED

                try:
                    await handler(envelope.data)
                except Exception as exc:
                    error = HandlerError(
                        str(exc) or type(exc).__name__,
                        envelope.event_type,
                        extra={"error_type": type(exc).__name__},
                    )
                    logger.warning("Event handler failed", exc_info=True, extra=error.extra)
                    return await self._handle_failure(message, metadata, error)

                await self._ack(message)
                logger.info("Event processed")
                return MessageOutcome.ACKED

    @property
    def in_flight(self) -> int:
        """Deliveries currently being processed."""
        return self._in_flight

    async def _on_message(self, message: AbstractIncomingMessage) -> None:
        self._in_flight += 1
        self._idle.clear()
        try:
            await self.process(message)
        finally:
            self._in_flight -= 1
            if not self._in_flight:
                self._idle.set()

    async def _handle_failure(
        self,
        message: AbstractIncomingMessage,
        metadata: RetryMetadata,
        error: MessagingError,
    ) -> MessageOutcome:
        decision = self._retry_policy.decide(metadata)
        try:
            if decision is RetryDecision.RETRY:
                await self._republish_for_retry(message, metadata)
                outcome = MessageOutcome.RETRIED
            else:
                await self._route_to_dead_letter(message, metadata, error)
                outcome = MessageOutcome.DEAD_LETTERED
        except BROKER_ERRORS as exc:
            logger.error(
                "Failed to route failed message, requeueing",
                extra={"decision": str(decision), "error": str(exc), "error_type": type(exc).__name__},
            )
            await self._requeue(message)
            return MessageOutcome.REQUEUED

        await self._ack(message)
        return outcome

    async def _republish_for_retry(
        self,
        message: AbstractIncomingMessage,
        metadata: RetryMetadata,
    ) -> None:
        declared = self._require_declared()
        next_metadata = metadata.next_attempt()
        await declared.retry_exchange.publish(
            self._copy_message(message, next_metadata.to_headers()),
            routing_key=RETRY_ROUTING_KEY,
        )
        logger.warning(
            "Message sent to retry queue",
            extra={
                "retry_count": next_metadata.retry_count,
                "max_retries": self._retry_policy.max_retries,
                "retry_delay_ms": self._retry_policy.retry_delay_ms,
            },
        )

    async def _route_to_dead_letter(
        self,
        message: AbstractIncomingMessage,
        metadata: RetryMetadata,
        error: MessagingError,
    ) -> None:
        channel = self._connection.channel
        if channel is None or self._declared is None:
            raise BrokerConnectionError("No channel available for dead-lettering")
        dead = metadata.dead_lettered(error.detail)
        await channel.default_exchange.publish(
            self._copy_message(message, dead.to_headers()),
            routing_key=DEAD_LETTER_QUEUE_NAME,
        )
        logger.error(
            "Message moved to dead-letter queue",
            extra={
                "queue": DEAD_LETTER_QUEUE_NAME,
                "retry_count": dead.retry_count,
                "failed_reason": dead.failed_reason,
            },
        )

    @staticmethod
    def _copy_message(message: AbstractIncomingMessage, headers: dict[str, Any]) -> Message:
        return Message(
            message.body,
            headers={**(message.headers or {}), **headers},
            content_type=message.content_type or CONTENT_TYPE,
            content_encoding=message.content_encoding or CONTENT_ENCODING,
            delivery_mode=DeliveryMode.PERSISTENT,
            message_id=message.message_id,
            timestamp=message.timestamp,
            type=message.type,
        )

    def _require_declared(self) -> DeclaredTopology:
        if self._declared is None or not self._connection.is_ready():
            raise BrokerConnectionError("No channel available for retry republish")
        return self._declared

    async def _ack(self, message: AbstractIncomingMessage) -> None:
        try:
            await message.ack()
        except BROKER_ERRORS as exc:
            # The broker redelivers unacked messages once the channel is gone
            logger.warning(
                "Failed to acknowledge message",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )

    async def _requeue(self, message: AbstractIncomingMessage) -> None:
        try:
            await message.nack(requeue=True)
        except BROKER_ERRORS as exc:
            logger.warning(
                "Failed to requeue message",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )

    async def _open(self, channel: AbstractChannel) -> None:
        declared = await self._topology.setup(channel)
        self._connection.mark_topology_ready()
        self._declared = declared
        self._consumer_tag = await declared.main_queue.consume(self._on_message, no_ack=False)
        self._connection.mark_consuming()
        logger.info(
            "Subscriber consuming",
            extra={
                "connection": self._connection.name,
                "binding_key": self._topology.binding_key,
                "event_types": self._handlers.event_types,
            },
        )

    def _forget(self) -> None:
        self._declared = None
        self._consumer_tag = None

    async def _before_close(self) -> None:
        """Stop new deliveries, then wait for the in-flight one to settle."""
        declared, tag = self._declared, self._consumer_tag
        if declared is not None and tag is not None and self._connection.is_ready():
            try:
                await declared.main_queue.cancel(tag)
            except BROKER_ERRORS as exc:
                logger.debug(
                    "Failed to cancel consumer",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                )

        if self._idle.is_set():
            return
        logger.info("Waiting for in-flight delivery", extra={"in_flight": self._in_flight})
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=self._drain_timeout)
        except TimeoutError:
            logger.warning(
                "In-flight delivery did not finish before close, it will be redelivered",
                extra={"in_flight": self._in_flight, "drain_timeout": self._drain_timeout},
            )


__all__ = ["EventSubscriber", "MessageOutcome"]
