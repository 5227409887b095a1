"""
Ticker - fixed-interval scheduler for the pollers.

Fires a coroutine function immediately on start, then every `interval`
seconds until stopped. Fixed rate, not fixed delay: a tick is due every
interval regardless of how long the previous one took.

Overlap guard:
- If the previous tick is still running when the next one is due, the new
  tick is skipped (never two passes writing the same snapshot).
- stop() ends the schedule but leaves an in-flight tick alone; the owner
  decides whether to keep its result (pollers discard it).
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("lacat.ticker")

TickFn = Callable[[], Awaitable[None]]


class Ticker:

    def __init__(self, name: str, interval: float, fn: TickFn):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self._fn = fn
        self._loop_task: Optional[asyncio.Task] = None
        self._current: Optional[asyncio.Task] = None
        self._stopped = False
        self.ticks_run: int = 0
        self.ticks_skipped: int = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def in_flight(self) -> bool:
        return self._current is not None and not self._current.done()

    def fire(self) -> Optional[asyncio.Task]:
        """Start one tick now. Returns None if a tick is still in flight."""
        if self.in_flight:
            self.ticks_skipped += 1
            logger.debug(f"{self.name}: previous tick still running, skipping")
            return None
        self.ticks_run += 1
        self._current = asyncio.create_task(self._run_once())
        return self._current

    async def _run_once(self) -> None:
        try:
            await self._fn()
        except Exception as e:
            logger.warning(f"{self.name}: tick failed: {e}")

    async def _loop(self) -> None:
        while not self._stopped:
            self.fire()
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        if self.running:
            return self._loop_task
        self._stopped = False
        self._loop_task = asyncio.create_task(self._loop())
        logger.info(f"{self.name}: started (every {self.interval:g}s)")
        return self._loop_task

    async def stop(self) -> None:
        self._stopped = True
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
            logger.info(f"{self.name}: stopped")

    def get_status(self) -> dict:
        return {
            "name": self.name,
            "interval_seconds": self.interval,
            "running": self.running,
            "in_flight": self.in_flight,
            "ticks_run": self.ticks_run,
            "ticks_skipped": self.ticks_skipped,
        }
