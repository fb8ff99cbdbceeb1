"""Broker connection manager.

Owns one AMQP connection and one channel for one direction of traffic
(publisher or subscriber). State changes are explicit: close notifications
from the broker flip the state to DISCONNECTED, drop the connection/channel
pair wholesale and hand control to the owner through ``on_lost``.

Recovery is not done here. ``connect()`` makes exactly one attempt; the
owner's ReconnectionSupervisor decides when to try again.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import StrEnum
import logging
from typing import TYPE_CHECKING, Any

import aio_pika
from aio_pika.exceptions import AMQPError, ChannelInvalidStateError

from company_service.infra.messaging.exceptions import BrokerConnectionError

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractConnection

logger = logging.getLogger(__name__)

ConnectionLostCallback = Callable[[BaseException | None], None]

CONNECT_ERRORS: tuple[type[BaseException], ...] = (
    AMQPError,
    ChannelInvalidStateError,
    OSError,
    TimeoutError,
)
"""Exceptions that mean the broker is unreachable or the link dropped."""


class ConnectionState(StrEnum):
    """Connection states for one direction of broker traffic.

    Attributes:
        DISCONNECTED: No connection; initial state and state after a loss.
        CONNECTING: A connection attempt is in progress.
        CONNECTED: Connection and channel are open.
        TOPOLOGY_READY: Exchanges and queues have been declared.
        CONSUMING: The consumer is registered (subscriber only).
        RECONNECTING: A reconnect attempt is scheduled.
        CLOSED: Deliberate shutdown; terminal.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    TOPOLOGY_READY = "topology_ready"
    CONSUMING = "consuming"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


_READY_STATES = frozenset(
    {ConnectionState.CONNECTED, ConnectionState.TOPOLOGY_READY, ConnectionState.CONSUMING}
)


class BrokerConnection:
    """One connection and one channel to the broker, with explicit state.

    Example:
        connection = BrokerConnection(url, name="company-service.subscriber", on_lost=on_lost)
        channel = await connection.connect()
        ...
        await connection.close()
    """

    def __init__(
        self,
        url: str,
        *,
        name: str = "company-service",
        heartbeat: int = 60,
        timeout: float = 10.0,
        on_lost: ConnectionLostCallback | None = None,
    ) -> None:
        """Initialize the connection manager.

        Args:
            url: AMQP URL of the broker.
            name: Connection name shown in the management UI.
            heartbeat: Heartbeat interval in seconds.
            timeout: Timeout for opening the connection.
            on_lost: Called when the broker closes the connection or channel
                outside of a deliberate shutdown.
        """
        self._url = url
        self._name = name
        self._heartbeat = heartbeat
        self._timeout = timeout
        self._on_lost = on_lost
        self._connection: AbstractConnection | None = None
        self._channel: AbstractChannel | None = None
        self._state = ConnectionState.DISCONNECTED
        self._releasing = False
        self._cleanup_tasks: set[asyncio.Task[None]] = set()

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def channel(self) -> AbstractChannel | None:
        """The current channel, or None while disconnected."""
        return self._channel

    def is_ready(self) -> bool:
        """True while an open channel is available."""
        return (
            self._state in _READY_STATES
            and self._channel is not None
            and not self._channel.is_closed
        )

    async def connect(self) -> AbstractChannel:
        """Open a connection and a channel.

        Makes a single attempt. A half-opened connection is released before the
        error is raised.

        Returns:
            The open channel.

        Raises:
            BrokerConnectionError: If the broker is unreachable, the channel
                cannot be opened, or the manager is closed.
        """
        if self._state is ConnectionState.CLOSED:
            raise BrokerConnectionError("Connection manager is closed", extra={"connection": self._name})
        if self.is_ready() and self._channel is not None:
            return self._channel

        await self._release()
        self._state = ConnectionState.CONNECTING

        connection: AbstractConnection | None = None
        try:
            connection = await aio_pika.connect(
                self._url,
                timeout=self._timeout,
                client_properties={"connection_name": self._name},
                heartbeat=self._heartbeat,
            )
            channel = await connection.channel()
        except CONNECT_ERRORS as exc:
            if connection is not None:
                await _close_quietly(connection, self._name)
            if self._state is not ConnectionState.CLOSED:
                self._state = ConnectionState.DISCONNECTED
            raise BrokerConnectionError(
                f"Failed to connect to RabbitMQ: {exc}",
                extra={"connection": self._name, "error_type": type(exc).__name__},
            ) from exc
        except BaseException:
            # Cancelled mid-attempt; the connection was never handed to this manager
            if connection is not None:
                await _close_quietly(connection, self._name)
            if self._state is ConnectionState.CONNECTING:
                self._state = ConnectionState.DISCONNECTED
            raise

        if self._state is ConnectionState.CLOSED:
            # close() ran while the attempt was in flight
            await _close_quietly(connection, self._name)
            raise BrokerConnectionError("Connection manager is closed", extra={"connection": self._name})

        self._connection = connection
        self._channel = channel
        connection.close_callbacks.add(self._on_close)
        channel.close_callbacks.add(self._on_close)
        self._state = ConnectionState.CONNECTED

        logger.info("Connected to RabbitMQ", extra={"connection": self._name})
        return channel

    def mark_topology_ready(self) -> None:
        if self._state is ConnectionState.CONNECTED:
            self._state = ConnectionState.TOPOLOGY_READY

    def mark_consuming(self) -> None:
        if self._state in (ConnectionState.CONNECTED, ConnectionState.TOPOLOGY_READY):
            self._state = ConnectionState.CONSUMING

    def mark_reconnecting(self) -> None:
        if self._state is ConnectionState.DISCONNECTED:
            self._state = ConnectionState.RECONNECTING

    async def disconnect(self) -> None:
        """Release channel and connection without entering CLOSED.

        Used on the failure path of a start sequence; the manager can connect
        again afterwards.
        """
        await self._release()
        if self._state is not ConnectionState.CLOSED:
            self._state = ConnectionState.DISCONNECTED

    async def close(self) -> None:
        """Close channel and connection. Idempotent and terminal."""
        if self._state is ConnectionState.CLOSED:
            return
        self._state = ConnectionState.CLOSED
        await self._release()
        if self._cleanup_tasks:
            await asyncio.gather(*self._cleanup_tasks, return_exceptions=True)
        logger.info("RabbitMQ connection closed", extra={"connection": self._name})

    async def _release(self) -> None:
        channel, connection = self._channel, self._connection
        self._channel = None
        self._connection = None
        if channel is None and connection is None:
            return

        self._releasing = True
        try:
            if channel is not None:
                await _close_quietly(channel, self._name)
            if connection is not None:
                await _close_quietly(connection, self._name)
        finally:
            self._releasing = False

    def _on_close(self, sender: Any, exc: BaseException | None = None) -> None:
        """Close callback registered on both the connection and the channel."""
        if sender is not self._connection and sender is not self._channel:
            # Stale notification from a pair that was already replaced
            return
        if self._releasing or self._state is ConnectionState.CLOSED:
            return

        leftover = self._connection if sender is self._channel else None
        self._channel = None
        self._connection = None
        self._state = ConnectionState.DISCONNECTED

        logger.warning(
            "RabbitMQ connection lost",
            extra={
                "connection": self._name,
                "source": "channel" if leftover is not None else "connection",
                "error": str(exc) if exc else None,
                "error_type": type(exc).__name__ if exc else None,
            },
        )

        if leftover is not None and not leftover.is_closed:
            # The channel died on a live connection; replace the pair as a whole
            task = asyncio.get_running_loop().create_task(_close_quietly(leftover, self._name))
            self._cleanup_tasks.add(task)
            task.add_done_callback(self._cleanup_tasks.discard)

        if self._on_lost is not None:
            self._on_lost(exc)


async def _close_quietly(resource: AbstractChannel | AbstractConnection, name: str) -> None:
    if resource.is_closed:
        return
    try:
        await resource.close()
    except CONNECT_ERRORS as exc:
        logger.debug(
            "Error while closing RabbitMQ resource",
            extra={"connection": name, "error": str(exc), "error_type": type(exc).__name__},
        )


__all__ = [
    "CONNECT_ERRORS",
    "BrokerConnection",
    "ConnectionLostCallback",
    "ConnectionState",
]
