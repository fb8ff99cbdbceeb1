"""Unit tests for the reconnection supervisor."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from company_service.infra.messaging.exceptions import TopologyError
from company_service.infra.messaging.supervisor import ReconnectionSupervisor


async def drain(supervisor: ReconnectionSupervisor) -> None:
    """Wait until no attempt is pending, following rescheduled attempts."""
    while supervisor.pending:
        await supervisor._task


@pytest.mark.unit
class TestReconnectionSupervisorBackoff:
    """Test suite for linear backoff."""

    @pytest.mark.parametrize("attempt", [1, 2, 5, 10])
    def test_delay_is_linear(self, attempt):
        """Test that attempt n waits n * base delay."""
        supervisor = ReconnectionSupervisor(AsyncMock(), base_delay=5.0)

        assert supervisor.delay_for(attempt) == 5.0 * attempt

    @pytest.mark.asyncio
    async def test_schedule_sleeps_then_reconnects(self):
        """Test that a scheduled attempt waits its delay and calls reconnect once."""
        sleep = AsyncMock()
        reconnect = AsyncMock()
        supervisor = ReconnectionSupervisor(reconnect, base_delay=5.0, sleep=sleep)

        assert supervisor.schedule() is True
        await drain(supervisor)

        sleep.assert_awaited_once_with(5.0)
        reconnect.assert_awaited_once()
        assert supervisor.attempts == 1

    @pytest.mark.asyncio
    async def test_failed_reconnects_back_off_and_give_up_after_ten(self):
        """Test that ten consecutive failures exhaust the supervisor."""
        sleep = AsyncMock()
        supervisor: ReconnectionSupervisor

        async def failing_reconnect() -> None:
            supervisor.schedule()

        supervisor = ReconnectionSupervisor(
            failing_reconnect, base_delay=5.0, max_attempts=10, sleep=sleep
        )

        supervisor.schedule()
        await drain(supervisor)

        delays = [call.args[0] for call in sleep.await_args_list]
        assert delays == [5.0 * n for n in range(1, 11)]
        assert supervisor.exhausted
        assert supervisor.attempts == 10
        assert supervisor.schedule() is False
        assert sleep.await_count == 10

    @pytest.mark.asyncio
    async def test_reset_restores_budget(self):
        """Test that a successful start resets the attempt counter."""
        supervisor = ReconnectionSupervisor(AsyncMock(), sleep=AsyncMock())
        supervisor.schedule()
        await drain(supervisor)
        assert supervisor.attempts == 1

        supervisor.reset()

        assert supervisor.attempts == 0
        assert not supervisor.exhausted


@pytest.mark.unit
class TestReconnectionSupervisorSingleFlight:
    """Test suite for pending-attempt handling."""

    @pytest.mark.asyncio
    async def test_second_schedule_ignored_while_pending(self):
        """Test that at most one attempt is pending at a time."""
        gate = asyncio.Event()

        async def slow_sleep(delay: float) -> None:
            await gate.wait()

        reconnect = AsyncMock()
        supervisor = ReconnectionSupervisor(reconnect, sleep=slow_sleep)

        assert supervisor.schedule() is True
        assert supervisor.schedule() is False
        assert supervisor.attempts == 1

        gate.set()
        await drain(supervisor)
        reconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_attempt(self):
        """Test that stop() cancels the wait and blocks new attempts."""
        gate = asyncio.Event()

        async def slow_sleep(delay: float) -> None:
            await gate.wait()

        reconnect = AsyncMock()
        supervisor = ReconnectionSupervisor(reconnect, sleep=slow_sleep)
        supervisor.schedule()
        await asyncio.sleep(0)

        await supervisor.stop()

        assert not supervisor.pending
        assert supervisor.stopped
        assert supervisor.schedule() is False
        reconnect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fatal_error_stops_supervision(self):
        """Test that an exception escaping reconnect ends supervision."""
        reconnect = AsyncMock(side_effect=TopologyError("conflict"))
        supervisor = ReconnectionSupervisor(reconnect, sleep=AsyncMock())

        supervisor.schedule()
        await drain(supervisor)

        assert supervisor.stopped
        assert supervisor.schedule() is False


@pytest.mark.unit
class TestReconnectionSupervisorValidation:
    """Test suite for constructor validation."""

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            ReconnectionSupervisor(AsyncMock(), max_attempts=0)

    def test_rejects_negative_delay(self):
        with pytest.raises(ValueError):
            ReconnectionSupervisor(AsyncMock(), base_delay=-1.0)
