"""
Unit tests for SessionSweeper.

Tests:
- One-off sweeps
- Overlap prevention
- Background task start/stop
"""
import asyncio
from unittest.mock import MagicMock

import pytest

from memri.services.sessions import SessionSweeper


@pytest.fixture
def service() -> MagicMock:
    service = MagicMock()
    service.sweep.return_value = 3
    return service


class TestRunOnce:
    """Tests for run_once."""

    def test_returns_sweep_count(self, service):
        sweeper = SessionSweeper(service, interval=60)

        assert sweeper.run_once() == 3
        service.sweep.assert_called_once()

    def test_skips_while_another_sweep_runs(self, service):
        sweeper = SessionSweeper(service, interval=60)
        sweeper._lock.acquire()
        try:
            assert sweeper.run_once() is None
        finally:
            sweeper._lock.release()

        service.sweep.assert_not_called()

    def test_rejects_non_positive_interval(self, service):
        with pytest.raises(ValueError):
            SessionSweeper(service, interval=0)


class TestBackgroundTask:
    """Tests for start/stop in an event loop."""

    @pytest.mark.asyncio
    async def test_first_sweep_is_immediate(self, service):
        sweeper = SessionSweeper(service, interval=3600)

        sweeper.start()
        for _ in range(50):
            if service.sweep.called:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

        service.sweep.assert_called_once()
        assert sweeper.running is False

    @pytest.mark.asyncio
    async def test_sweeps_repeatedly(self, service):
        sweeper = SessionSweeper(service, interval=0.02)

        sweeper.start()
        await asyncio.sleep(0.2)
        await sweeper.stop()

        assert service.sweep.call_count >= 2

    @pytest.mark.asyncio
    async def test_errors_do_not_stop_the_loop(self, service):
        calls = []

        def sweep():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return 0

        service.sweep.side_effect = sweep
        sweeper = SessionSweeper(service, interval=0.02)

        sweeper.start()
        await asyncio.sleep(0.2)
        assert sweeper.running is True
        await sweeper.stop()

        assert service.sweep.call_count >= 2

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_task(self, service):
        sweeper = SessionSweeper(service, interval=3600)

        sweeper.start()
        task = sweeper._task
        sweeper.start()

        assert sweeper._task is task
        await sweeper.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, service):
        sweeper = SessionSweeper(service, interval=60)

        await sweeper.stop()

        assert sweeper.running is False
