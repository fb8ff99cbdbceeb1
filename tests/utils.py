"""Test doubles for aio-pika objects and event sinks.

Usage:
    from tests.utils import make_channel, make_connection, make_incoming_message

    channel = make_channel()
    message = make_incoming_message({"eventType": "user.created", "data": {}})
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock


class CallbackCollection(list):
    """Stand-in for aio-pika's close callback collection."""

    def add(self, callback: Any) -> None:
        self.append(callback)

    def fire(self, sender: Any, exc: BaseException | None = None) -> None:
        for callback in list(self):
            callback(sender, exc)


def make_queue(name: str) -> MagicMock:
    queue = MagicMock(name=f"queue:{name}")
    queue.name = name
    queue.bind = AsyncMock()
    queue.consume = AsyncMock(return_value=f"ctag-{name}")
    queue.cancel = AsyncMock()
    return queue


def make_exchange(name: str) -> MagicMock:
    exchange = MagicMock(name=f"exchange:{name}")
    exchange.name = name
    exchange.publish = AsyncMock()
    return exchange


def make_channel() -> MagicMock:
    """Channel double recording declared exchanges and queues by name."""
    channel = MagicMock(name="channel")
    channel.is_closed = False
    channel.close_callbacks = CallbackCollection()
    channel.exchanges = {}
    channel.queues = {}

    async def declare_exchange(name: str, *args: Any, **kwargs: Any) -> MagicMock:
        exchange = channel.exchanges.setdefault(name, make_exchange(name))
        return exchange

    async def declare_queue(name: str, *args: Any, **kwargs: Any) -> MagicMock:
        queue = channel.queues.setdefault(name, make_queue(name))
        return queue

    async def close() -> None:
        channel.is_closed = True

    channel.declare_exchange = AsyncMock(side_effect=declare_exchange)
    channel.declare_queue = AsyncMock(side_effect=declare_queue)
    channel.set_qos = AsyncMock()
    channel.close = AsyncMock(side_effect=close)
    channel.default_exchange = make_exchange("")
    return channel


def make_connection(channel: MagicMock | None = None) -> MagicMock:
    connection = MagicMock(name="connection")
    connection.is_closed = False
    connection.close_callbacks = CallbackCollection()
    connection.channel = AsyncMock(return_value=channel or make_channel())

    async def close() -> None:
        connection.is_closed = True

    connection.close = AsyncMock(side_effect=close)
    return connection


def make_incoming_message(
    body: bytes | str | dict[str, Any],
    *,
    headers: dict[str, Any] | None = None,
    message_id: str = "msg-1",
    routing_key: str = "user.created",
) -> MagicMock:
    """Incoming delivery double with AsyncMock ack/nack."""
    from company_service.infra.messaging.envelope import EventEnvelope

    if isinstance(body, dict):
        body = EventEnvelope.model_validate(body).encode()
    elif isinstance(body, str):
        body = body.encode("utf-8")

    message = MagicMock(name="incoming_message")
    message.body = body
    message.headers = dict(headers or {})
    message.message_id = message_id
    message.routing_key = routing_key
    message.content_type = "application/json"
    message.content_encoding = "utf-8"
    message.timestamp = datetime(2025, 1, 1, tzinfo=UTC)
    message.type = None
    message.ack = AsyncMock()
    message.nack = AsyncMock()
    return message


async def no_sleep(delay: float) -> None:
    """Sleep replacement that returns immediately."""


class RecordingSink:
    """Event sink that records published envelopes."""

    def __init__(self) -> None:
        self.published: list[tuple[str, Any]] = []

    async def publish(self, routing_key: str, envelope: Any) -> None:
        self.published.append((routing_key, envelope))

    @property
    def routing_keys(self) -> list[str]:
        return [key for key, _ in self.published]
