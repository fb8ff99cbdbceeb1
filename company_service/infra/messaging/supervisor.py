"""Reconnection supervisor with linear backoff.

After a connection loss or a failed start, the owner calls ``schedule()``.
Attempt ``n`` waits ``n * base_delay`` seconds in a background task and then
runs the owner's reconnect coroutine. The reconnect coroutine is expected to
call ``reset()`` when it succeeds and ``schedule()`` again when it fails.
After ``max_attempts`` consecutive failures the supervisor gives up and the
service keeps running with messaging degraded.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import contextlib
import logging

logger = logging.getLogger(__name__)

ReconnectCallable = Callable[[], Awaitable[None]]
SleepCallable = Callable[[float], Awaitable[None]]


class ReconnectionSupervisor:
    """Schedules delayed reconnect attempts, one at a time.

    Example:
        supervisor = ReconnectionSupervisor(subscriber.start, base_delay=5.0, max_attempts=10)
        connection = BrokerConnection(url, on_lost=lambda exc: supervisor.schedule())
    """

    def __init__(
        self,
        reconnect: ReconnectCallable,
        *,
        base_delay: float = 5.0,
        max_attempts: int = 10,
        name: str = "messaging",
        sleep: SleepCallable = asyncio.sleep,
    ) -> None:
        """Initialize the supervisor.

        Args:
            reconnect: Coroutine function that re-runs the owner's start sequence.
            base_delay: Backoff step in seconds.
            max_attempts: Consecutive attempts before giving up.
            name: Owner name for log records.
            sleep: Awaitable sleep, replaceable in tests.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        self._reconnect = reconnect
        self._base_delay = base_delay
        self._max_attempts = max_attempts
        self._name = name
        self._sleep = sleep
        self._attempts = 0
        self._task: asyncio.Task[None] | None = None
        self._stopped = False
        self._exhausted = False

    @property
    def attempts(self) -> int:
        """Reconnect attempts made since the last successful start."""
        return self._attempts

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def exhausted(self) -> bool:
        """True once the supervisor has given up."""
        return self._exhausted

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def pending(self) -> bool:
        """True while an attempt is waiting or running."""
        return self._task is not None and not self._task.done()

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds before attempt number ``attempt`` (1-based)."""
        return self._base_delay * attempt

    def schedule(self) -> bool:
        """Schedule the next reconnect attempt.

        A call while an attempt is already pending is ignored, unless it comes
        from the pending attempt itself (its reconnect failed).

        Returns:
            True if an attempt was scheduled.
        """
        if self._stopped or self._exhausted:
            return False
        if self.pending and self._task is not asyncio.current_task():
            logger.debug(
                "Reconnect already pending",
                extra={"connection": self._name, "attempt": self._attempts},
            )
            return False

        if self._attempts >= self._max_attempts:
            self._exhausted = True
            logger.error(
                "Max reconnection attempts reached, giving up",
                extra={"connection": self._name, "max_attempts": self._max_attempts},
            )
            return False

        self._attempts += 1
        delay = self.delay_for(self._attempts)
        logger.warning(
            "Scheduling RabbitMQ reconnect",
            extra={
                "connection": self._name,
                "attempt": self._attempts,
                "max_attempts": self._max_attempts,
                "delay_seconds": delay,
            },
        )
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._attempts, delay),
            name=f"{self._name}-reconnect-{self._attempts}",
        )
        return True

    def reset(self) -> None:
        """Clear the attempt counter after a successful start."""
        if self._attempts:
            logger.info(
                "RabbitMQ reconnected",
                extra={"connection": self._name, "attempts": self._attempts},
            )
        self._attempts = 0
        self._exhausted = False

    async def stop(self) -> None:
        """Cancel any pending attempt and refuse to schedule new ones."""
        self._stopped = True
        task, self._task = self._task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self, attempt: int, delay: float) -> None:
        await self._sleep(delay)
        if self._stopped:
            return
        logger.info(
            "Attempting RabbitMQ reconnect",
            extra={"connection": self._name, "attempt": attempt},
        )
        try:
            await self._reconnect()
        except Exception:
            # Transient failures reschedule inside the reconnect coroutine;
            # anything raised here is fatal.
            self._stopped = True
            logger.exception(
                "Reconnect failed permanently, supervision stopped",
                extra={"connection": self._name, "attempt": attempt},
            )


__all__ = ["ReconnectCallable", "ReconnectionSupervisor"]
