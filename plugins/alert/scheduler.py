"""
plugins/alert/scheduler.py

Asyncio-based tick scheduler.

Stands in for the game server's own scheduler: a single loop advances a
tick counter at a fixed interval and runs every registered periodic
callback that is due on that tick. Callbacks are plain synchronous
functions and run on the event loop thread, so they never overlap with
command handling.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional


# Minecraft-style server ticks: 20 per second
DEFAULT_TICK_INTERVAL = 0.05


@dataclass
class _Periodic:
    callback: Callable[[], None]
    period: int
    next_tick: int


class TickScheduler:
    """
    Runs periodic callbacks once every N ticks.

    Args:
        tick_interval: Seconds between ticks (default: 0.05).
    """

    def __init__(self, tick_interval: float = DEFAULT_TICK_INTERVAL):
        self.tick_interval = tick_interval
        self.running = False
        self.current_tick = 0
        self._task: Optional[asyncio.Task] = None
        self._periodic: Dict[int, _Periodic] = {}
        self._ids = itertools.count(1)
        self.logger = logging.getLogger(f"{__name__}.scheduler")

    async def start(self) -> None:
        """Start the tick loop in a background task."""
        if self.running:
            self.logger.warning("Scheduler already running")
            return

        self.running = True
        self._task = asyncio.create_task(self._tick_loop())
        self.logger.info(f"Scheduler started (interval: {self.tick_interval}s)")

    async def stop(self) -> None:
        """
        Stop the tick loop.

        Registered callbacks are kept; use cancel_all() to drop them.
        """
        if not self.running:
            return

        self.running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self.logger.info("Scheduler stopped")

    def schedule_periodic(
        self,
        callback: Callable[[], None],
        period: int = 1,
        delay: int = 0
    ) -> int:
        """
        Register a callback to run every `period` ticks.

        Args:
            callback: Synchronous function taking no arguments.
            period: Ticks between runs (at least 1).
            delay: Ticks to wait before the first run; 0 runs on the next tick.

        Returns:
            Handle to pass to cancel().
        """
        if period < 1:
            raise ValueError(f"period must be at least 1 tick, got {period}")

        handle = next(self._ids)
        self._periodic[handle] = _Periodic(
            callback=callback,
            period=period,
            next_tick=self.current_tick + 1 + max(delay, 0),
        )
        self.logger.debug(f"Scheduled periodic task {handle} every {period} tick(s)")
        return handle

    def cancel(self, handle: int) -> bool:
        """
        Deregister a periodic callback.

        Returns:
            True if the handle was registered, False otherwise.
        """
        if self._periodic.pop(handle, None) is not None:
            self.logger.debug(f"Cancelled periodic task {handle}")
            return True
        return False

    def cancel_all(self) -> None:
        """Deregister every periodic callback."""
        if self._periodic:
            self.logger.debug(f"Cancelling {len(self._periodic)} periodic task(s)")
        self._periodic.clear()

    def is_scheduled(self, handle: int) -> bool:
        """Check if a handle is registered."""
        return handle in self._periodic

    @property
    def pending_count(self) -> int:
        """Number of registered callbacks."""
        return len(self._periodic)

    def tick(self) -> None:
        """
        Advance one tick and run every callback due on it.

        Callbacks may cancel themselves or others while running; a callback
        cancelled earlier in the same tick does not run.
        """
        self.current_tick += 1

        for handle in list(self._periodic):
            entry = self._periodic.get(handle)
            if entry is None or entry.next_tick > self.current_tick:
                continue

            entry.next_tick = self.current_tick + entry.period
            try:
                entry.callback()
            except Exception as e:
                self.logger.exception(f"Error in periodic task {handle}: {e}")

    async def _tick_loop(self) -> None:
        """Main loop: one tick per interval until stopped."""
        self.logger.debug("Tick loop started")

        while self.running:
            try:
                self.tick()
                await asyncio.sleep(self.tick_interval)
            except asyncio.CancelledError:
                self.logger.debug("Tick loop cancelled")
                raise

        self.logger.debug("Tick loop ended")
