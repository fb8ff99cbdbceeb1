"""Error taxonomy of the messaging layer.

None of these reach the business caller that triggered an event: connection
errors feed the reconnection supervisor, decode and handler errors feed the
retry/dead-letter path, and dropped publishes are only logged. TopologyError is
the exception: it means the broker holds conflicting definitions and fails
startup.
"""

from __future__ import annotations

from typing import Any


class MessagingError(Exception):
    """Base class for messaging errors.

    Attributes:
        detail: Human-readable error message.
        extra: Structured context for log records.
    """

    def __init__(self, detail: str, extra: dict[str, Any] | None = None) -> None:
        self.detail = detail
        self.extra = extra or {}
        super().__init__(detail)


class BrokerConnectionError(MessagingError):
    """The broker is unreachable or the connection dropped."""


class TopologyError(MessagingError):
    """A durable exchange or queue exists with conflicting parameters.

    Deployment/configuration mismatch; never retried.
    """


class DecodeError(MessagingError):
    """A message body is not a valid event envelope."""


class HandlerError(MessagingError):
    """An event handler failed while processing a decoded envelope.

    Attributes:
        event_type: Event type of the failed envelope.
    """

    def __init__(
        self,
        detail: str,
        event_type: str,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.event_type = event_type
        super().__init__(detail, extra={"event_type": event_type, **(extra or {})})


class PublishDropError(MessagingError):
    """An outbound event was dropped because no channel was available.

    Logged by the publisher, never raised to callers.
    """


__all__ = [
    "BrokerConnectionError",
    "DecodeError",
    "HandlerError",
    "MessagingError",
    "PublishDropError",
    "TopologyError",
]
