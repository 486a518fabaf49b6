"""
Periodic Task

Non-reentrant background loop around an async callback. The next tick is
scheduled only after the current one has finished, so a slow tick delays
its successor instead of stacking concurrent runs. Ticks that fall due
while a run is in flight are skipped and counted.

Usage:
    task = PeriodicTask("validation", manager.validate_expired_predictions, 60)
    await task.start()
    # ... later ...
    await task.stop()
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional


logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Fixed-interval runner for one tick callback

    Args:
        name: Task name used in logs and statistics
        callback: Coroutine function executed once per tick
        interval: Seconds between the end of one tick and the start of the next
        run_immediately: Run the first tick on start instead of after one interval
    """

    def __init__(self,
                 name: str,
                 callback: Callable[[], Awaitable],
                 interval: float,
                 run_immediately: bool = False):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        self.name = name
        self.callback = callback
        self.interval = interval
        self.run_immediately = run_immediately

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._wakeup: Optional[asyncio.Event] = None
        self._in_tick = False

        # Statistics
        self.total_runs = 0
        self.total_errors = 0
        self.skipped_ticks = 0
        self.last_run_time: Optional[float] = None
        self.last_duration = 0.0
        self.last_result = None
        self.last_error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """Start the background loop"""
        if self._running:
            return

        self._running = True
        self._wakeup = asyncio.Event()
        if self.run_immediately:
            self._wakeup.set()
        self._task = asyncio.create_task(self._loop(), name=f"periodic:{self.name}")
        logger.info("Periodic task '%s' started (interval %.1fs)", self.name, self.interval)

    def trigger(self):
        """
        Request one extra tick as soon as possible

        Requests made while a tick is pending or running collapse into a
        single extra run.
        """
        if self._running and self._wakeup is not None:
            self._wakeup.set()

    async def stop(self, timeout: Optional[float] = None):
        """
        Stop scheduling and wait for the in-flight tick

        Args:
            timeout: Seconds to wait before cancelling the in-flight tick;
                None waits indefinitely
        """
        if not self._running and self._task is None:
            return

        self._running = False
        if self._wakeup is not None:
            self._wakeup.set()

        task = self._task
        self._task = None
        if task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Periodic task '%s' did not finish in %.1fs, cancelling",
                               self.name, timeout)
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        logger.info("Periodic task '%s' stopped", self.name)

    async def run_once(self):
        """Execute a single tick; errors are logged and counted"""
        if self._in_tick:
            self.skipped_ticks += 1
            logger.debug("Periodic task '%s' already running, tick skipped", self.name)
            return None

        self._in_tick = True
        started = time.monotonic()
        try:
            self.last_result = await self.callback()
            self.last_error = None
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.total_errors += 1
            self.last_error = str(e)
            self.last_result = None
            logger.exception("Periodic task '%s' failed", self.name)
        finally:
            self._in_tick = False
            self.total_runs += 1
            self.last_duration = time.monotonic() - started
            self.last_run_time = time.time()

        return self.last_result

    async def _loop(self):
        while self._running:
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

            if not self._running:
                break

            self._wakeup.clear()
            await self.run_once()

            # Whole intervals that elapsed during a long tick are not replayed
            overrun = int(self.last_duration // self.interval)
            if overrun:
                self.skipped_ticks += overrun

    def get_statistics(self) -> dict:
        """Get task statistics"""
        return {
            'name': self.name,
            'running': self._running,
            'interval': self.interval,
            'totalRuns': self.total_runs,
            'totalErrors': self.total_errors,
            'skippedTicks': self.skipped_ticks,
            'lastRunTime': self.last_run_time,
            'lastDuration': round(self.last_duration, 4),
            'lastResult': self.last_result if isinstance(self.last_result, (int, float, str)) else None,
            'lastError': self.last_error,
        }
