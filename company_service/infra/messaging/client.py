"""Shared lifecycle of the publisher and the subscriber.

Each direction owns one BrokerConnection and one ReconnectionSupervisor. The
start sequence is connect, then the subclass's ``_open`` step (declarations,
consumer registration). Transient failures hand control to the supervisor;
TopologyError stops supervision and propagates.
"""

from __future__ import annotations

import asyncio
import logging

from company_service.infra.messaging.connection import (
    CONNECT_ERRORS,
    BrokerConnection,
    ConnectionState,
)
from company_service.infra.messaging.exceptions import BrokerConnectionError, TopologyError
from company_service.infra.messaging.supervisor import ReconnectionSupervisor, SleepCallable

logger = logging.getLogger(__name__)

BROKER_ERRORS: tuple[type[BaseException], ...] = (BrokerConnectionError, *CONNECT_ERRORS)


class BrokerClient:
    """Base class for one supervised direction of broker traffic.

    Subclasses implement ``_open`` (run after the channel is open) and
    ``_forget`` (drop references tied to the lost channel).
    """

    role = "client"

    def __init__(
        self,
        url: str,
        *,
        name: str = "company-service",
        heartbeat: int = 60,
        timeout: float = 10.0,
        reconnect_base_delay: float = 5.0,
        reconnect_max_attempts: int = 10,
        sleep: SleepCallable = asyncio.sleep,
    ) -> None:
        self._connection = BrokerConnection(
            url,
            name=f"{name}.{self.role}",
            heartbeat=heartbeat,
            timeout=timeout,
            on_lost=self._on_connection_lost,
        )
        self._supervisor = ReconnectionSupervisor(
            self.start,
            base_delay=reconnect_base_delay,
            max_attempts=reconnect_max_attempts,
            name=self._connection.name,
            sleep=sleep,
        )
        self._starting = False
        self._closed = False

    @property
    def connection(self) -> BrokerConnection:
        return self._connection

    @property
    def supervisor(self) -> ReconnectionSupervisor:
        return self._supervisor

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    @property
    def closed(self) -> bool:
        return self._closed

    def is_ready(self) -> bool:
        return self._connection.is_ready()

    async def start(self) -> bool:
        """Connect and run the open step. Idempotent.

        Returns:
            True when ready, False when the attempt failed (a reconnect is then
            scheduled) or the client is closed.

        Raises:
            TopologyError: If the broker holds conflicting definitions.
        """
        if self._closed:
            return False
        if self.is_ready():
            return True
        if self._starting:
            return False

        self._starting = True
        try:
            channel = await self._connection.connect()
            await self._open(channel)
        except BROKER_ERRORS as exc:
            await self._release()
            logger.warning(
                "RabbitMQ start failed",
                extra={
                    "connection": self._connection.name,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            self._schedule_reconnect()
            return False
        except TopologyError as exc:
            await self._release()
            await self._supervisor.stop()
            logger.error(
                "RabbitMQ topology conflict, messaging will not be retried",
                extra={"connection": self._connection.name, "error": exc.detail, **exc.extra},
            )
            raise
        finally:
            self._starting = False

        self._supervisor.reset()
        return True

    async def close(self) -> None:
        """Stop supervision and close the connection. Idempotent and terminal."""
        if self._closed:
            return
        self._closed = True
        await self._supervisor.stop()
        await self._before_close()
        await self._connection.close()
        self._forget()

    async def _open(self, channel) -> None:
        raise NotImplementedError

    def _forget(self) -> None:
        """Drop references tied to the current channel."""

    async def _before_close(self) -> None:
        """Hook run before the connection is closed."""

    async def _release(self) -> None:
        self._forget()
        await self._connection.disconnect()

    def _on_connection_lost(self, exc: BaseException | None) -> None:
        # The start sequence handles its own failures
        if self._starting or self._closed:
            return
        self._forget()
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._closed:
            return
        if self._supervisor.schedule():
            self._connection.mark_reconnecting()


__all__ = ["BROKER_ERRORS", "BrokerClient"]
