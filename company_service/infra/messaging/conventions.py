"""Exchange, queue and routing key names for the messaging topology.

Names are fixed constants: the identity service publishes to ``auth_events`` and
other services consume ``company_events``, so renaming any of them is a
deployment change, not configuration.

The inbound namespace is the one tunable. Both the main queue binding pattern
and the handler event types are derived from it here, which keeps the two in
lock-step.
"""

from __future__ import annotations

# ──────────────────────────────────────────────────────────────────────────────
# Inbound (consumed from the identity service)
# ──────────────────────────────────────────────────────────────────────────────

INBOUND_EXCHANGE_NAME: str = "auth_events"
"""Topic exchange the identity service publishes user lifecycle events to."""

MAIN_QUEUE_NAME: str = "company_service_queue"
"""Durable queue this service consumes inbound events from."""

RETRY_EXCHANGE_NAME: str = "company_service_retry"
"""Direct exchange failed deliveries are republished to."""

RETRY_QUEUE_NAME: str = "company_service_queue.retry"
"""Holding queue; expired messages are dead-lettered back onto the main queue."""

RETRY_ROUTING_KEY: str = "retry"
"""Binding key between the retry exchange and the retry queue."""

DEAD_LETTER_QUEUE_NAME: str = "company_service_queue.dlq"
"""Terminal queue for messages that exhausted their retry budget."""

# ──────────────────────────────────────────────────────────────────────────────
# Outbound (published by this service)
# ──────────────────────────────────────────────────────────────────────────────

OUTBOUND_EXCHANGE_NAME: str = "company_events"
"""Topic exchange company domain events are published to."""

COMPANY_CREATED: str = "company.created"
COMPANY_UPDATED: str = "company.updated"
COMPANY_DELETED: str = "company.deleted"


# ──────────────────────────────────────────────────────────────────────────────
# Routing Key Helpers
# ──────────────────────────────────────────────────────────────────────────────


def get_routing_key_pattern(namespace: str) -> str:
    """Generate routing key pattern for a topic exchange binding.

    Args:
        namespace: Event namespace (e.g., "user" or "auth.user").

    Returns:
        Routing key pattern matching every action in the namespace.

    Example:
        >>> get_routing_key_pattern("user")
        'user.*'
    """
    return f"{namespace}.*"


def get_event_type(namespace: str, action: str) -> str:
    """Build a namespaced event type.

    Example:
        >>> get_event_type("auth.user", "created")
        'auth.user.created'
    """
    return f"{namespace}.{action}"
