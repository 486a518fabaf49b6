"""
Periodic Task Tests

Tests cover:
- Error isolation per tick
- Non-reentrant ticks
- Start / trigger / stop lifecycle
- Bounded shutdown
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from fleetcast.scheduling import PeriodicTask, SystemClock


class TestRunOnce:

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            PeriodicTask("broken", AsyncMock(), 0)

    @pytest.mark.asyncio
    async def test_result_recorded(self):
        task = PeriodicTask("generation", AsyncMock(return_value=32), 60)

        assert await task.run_once() == 32

        stats = task.get_statistics()
        assert stats['totalRuns'] == 1
        assert stats['totalErrors'] == 0
        assert stats['lastResult'] == 32
        assert stats['lastRunTime'] is not None

    @pytest.mark.asyncio
    async def test_error_logged_and_counted(self):
        callback = AsyncMock(side_effect=[RuntimeError("store down"), 4])
        task = PeriodicTask("validation", callback, 60)

        assert await task.run_once() is None
        assert task.total_errors == 1
        assert task.last_error == "store down"

        # Next tick runs normally
        assert await task.run_once() == 4
        assert task.last_error is None
        assert task.total_runs == 2

    @pytest.mark.asyncio
    async def test_overlapping_tick_skipped(self):
        release = asyncio.Event()
        calls = 0

        async def slow_tick():
            nonlocal calls
            calls += 1
            await release.wait()
            return calls

        task = PeriodicTask("slow", slow_tick, 60)
        first = asyncio.create_task(task.run_once())
        await asyncio.sleep(0)

        assert await task.run_once() is None
        assert task.skipped_ticks == 1

        release.set()
        assert await first == 1
        assert calls == 1


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_run_immediately(self):
        callback = AsyncMock(return_value=0)
        task = PeriodicTask("generation", callback, 60, run_immediately=True)

        await task.start()
        await asyncio.sleep(0.05)
        await task.stop()

        assert callback.await_count == 1
        assert not task.is_running

    @pytest.mark.asyncio
    async def test_ticks_on_interval(self):
        callback = AsyncMock(return_value=0)
        task = PeriodicTask("simulation", callback, 0.01)

        await task.start()
        await asyncio.sleep(0.1)
        await task.stop()

        assert callback.await_count >= 2

    @pytest.mark.asyncio
    async def test_trigger_runs_early(self):
        callback = AsyncMock(return_value=0)
        task = PeriodicTask("validation", callback, 60)

        await task.start()
        task.trigger()
        task.trigger()
        await asyncio.sleep(0.05)
        await task.stop()

        assert callback.await_count == 1

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        task = PeriodicTask("validation", AsyncMock(return_value=0), 60)
        await task.start()
        first = task._task
        await task.start()

        assert task._task is first
        await task.stop()

    @pytest.mark.asyncio
    async def test_stop_waits_for_in_flight_tick(self):
        finished = []

        async def tick():
            await asyncio.sleep(0.05)
            finished.append(True)

        task = PeriodicTask("generation", tick, 60, run_immediately=True)
        await task.start()
        await asyncio.sleep(0.01)
        await task.stop()

        assert finished == [True]

    @pytest.mark.asyncio
    async def test_stop_timeout_cancels(self):
        async def stuck():
            await asyncio.sleep(10)

        task = PeriodicTask("generation", stuck, 60, run_immediately=True)
        await task.start()
        await asyncio.sleep(0.01)
        await asyncio.wait_for(task.stop(timeout=0.05), timeout=1)

        assert not task.is_running

    @pytest.mark.asyncio
    async def test_stop_before_start(self):
        task = PeriodicTask("idle", AsyncMock(), 60)
        await task.stop()
        assert task.get_statistics()['running'] is False


class TestSystemClock:

    def test_now_is_utc(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert now.utcoffset().total_seconds() == 0
