"""RabbitMQ messaging: connection lifecycle, topology, publish and consume.

Inbound events arrive on ``auth_events`` and are consumed from
``company_service_queue``; failed deliveries go through a TTL retry queue and
end up on a dead-letter queue after the retry budget is spent. Company events
are published to ``company_events``.

Usage:
    from company_service.infra.messaging import EventHandlerRegistry, MessagingRuntime

    runtime = MessagingRuntime.from_settings(get_rabbit_settings(), handlers)
    await runtime.start()
"""

from company_service.infra.messaging.connection import BrokerConnection, ConnectionState
from company_service.infra.messaging.envelope import EventEnvelope
from company_service.infra.messaging.exceptions import (
    BrokerConnectionError,
    DecodeError,
    HandlerError,
    MessagingError,
    PublishDropError,
    TopologyError,
)
from company_service.infra.messaging.handlers import EventHandler, EventHandlerRegistry
from company_service.infra.messaging.publisher import EventPublisher
from company_service.infra.messaging.retry import RetryDecision, RetryMetadata, RetryPolicy
from company_service.infra.messaging.runtime import MessagingRuntime
from company_service.infra.messaging.subscriber import EventSubscriber, MessageOutcome
from company_service.infra.messaging.supervisor import ReconnectionSupervisor
from company_service.infra.messaging.topology import DeclaredTopology, Topology

__all__ = [
    "BrokerConnection",
    "BrokerConnectionError",
    "ConnectionState",
    "DecodeError",
    "DeclaredTopology",
    "EventEnvelope",
    "EventHandler",
    "EventHandlerRegistry",
    "EventPublisher",
    "EventSubscriber",
    "HandlerError",
    "MessageOutcome",
    "MessagingError",
    "MessagingRuntime",
    "PublishDropError",
    "ReconnectionSupervisor",
    "RetryDecision",
    "RetryMetadata",
    "RetryPolicy",
    "Topology",
    "TopologyError",
]
