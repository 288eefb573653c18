"""
Tick Scheduler
==============

Periodic driver for the tick pipeline.

Lifecycle:
    await scheduler.start()   # spawns the driver task
    await scheduler.stop()    # no further ticks; waits for the in-flight one

Design Rules:
    - Ticks never overlap; each tick runs to completion in a worker thread
    - Ticks are scheduled at a fixed rate (interval measured start to start)
    - An exception in a tick is logged and the driver keeps running
    - stop() returns only after the in-flight tick (and its append) is done,
      so the store can be closed immediately afterwards
"""

import asyncio
import logging
from typing import Optional

from crowd_monitor.pipeline.tick import TickPipeline


logger = logging.getLogger(__name__)


class TickScheduler:
    """
    Runs ``pipeline.run_tick`` every ``interval_seconds``.

    Attributes:
        interval_seconds: Seconds between tick starts
        run_immediately: Run the first tick on start instead of after one interval
        tick_errors: Ticks that raised unexpectedly
    """

    def __init__(
        self,
        pipeline: TickPipeline,
        interval_seconds: float = 5.0,
        run_immediately: bool = False,
        stop_timeout_seconds: float = 10.0,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.pipeline = pipeline
        self.interval_seconds = interval_seconds
        self.run_immediately = run_immediately
        self.stop_timeout_seconds = stop_timeout_seconds

        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self.tick_errors: int = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the driver task. No-op if already running."""
        if self.running:
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="tick_scheduler")
        logger.info(f"TickScheduler started: interval={self.interval_seconds}s")

    async def stop(self) -> None:
        """
        Stop the driver.

        Guarantees no tick starts after this call and waits for an
        in-flight tick to finish.
        """
        if self._task is None or self._stop_event is None:
            return

        logger.info("TickScheduler stopping...")
        self._stop_event.set()

        try:
            await asyncio.wait_for(
                asyncio.shield(self._task),
                timeout=self.stop_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"In-flight tick did not finish within {self.stop_timeout_seconds}s"
            )
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        self._task = None
        logger.info(f"TickScheduler stopped after {self.pipeline.tick_count} ticks")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        if not self.run_immediately:
            next_tick += self.interval_seconds
            if await self._wait_for_stop(self.interval_seconds):
                return

        while not self._stop_requested():
            try:
                await asyncio.to_thread(self.pipeline.run_tick)
            except Exception as e:
                self.tick_errors += 1
                logger.error(f"Tick failed: {e}", exc_info=True)

            next_tick += self.interval_seconds
            delay = max(0.0, next_tick - loop.time())
            if delay == 0.0:
                # Fell behind; realign instead of bursting
                next_tick = loop.time()
            if await self._wait_for_stop(delay):
                return

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Sleep up to ``timeout``; True if stop was requested."""
        assert self._stop_event is not None
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    def _stop_requested(self) -> bool:
        return self._stop_event is not None and self._stop_event.is_set()
