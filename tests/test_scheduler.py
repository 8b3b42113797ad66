"""Tests for sandbox_persistence.sync.scheduler module."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sandbox_persistence.sync.scheduler import run_periodic


def make_orchestrator(side_effect=None):
    orchestrator = MagicMock()
    orchestrator.fire_and_forget = AsyncMock(return_value=None, side_effect=side_effect)
    return orchestrator


class TestRunPeriodic:

    @pytest.mark.asyncio
    async def test_runs_requested_cycles(self, no_sleep):
        orchestrator = make_orchestrator()
        cycles = await run_periodic(orchestrator, interval=300, iterations=3)

        assert cycles == 3
        assert orchestrator.fire_and_forget.await_count == 3
        # no wait before the first cycle
        assert no_sleep.await_count == 2
        no_sleep.assert_awaited_with(300)

    @pytest.mark.asyncio
    async def test_failed_cycle_does_not_stop_loop(self, no_sleep):
        orchestrator = make_orchestrator(side_effect=[RuntimeError("boom"), None])
        cycles = await run_periodic(orchestrator, interval=1, iterations=2)

        assert cycles == 2
        assert orchestrator.fire_and_forget.await_count == 2

    @pytest.mark.asyncio
    async def test_zero_iterations(self, no_sleep):
        orchestrator = make_orchestrator()
        assert await run_periodic(orchestrator, iterations=0) == 0
        orchestrator.fire_and_forget.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_interval(self):
        with pytest.raises(ValueError):
            await run_periodic(make_orchestrator(), interval=0, iterations=1)
