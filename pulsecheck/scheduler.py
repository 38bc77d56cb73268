"""Periodic fan-out of probes across every stored monitor."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from enum import Enum
from types import TracebackType

from pulsecheck.checker import Checker
from pulsecheck.models import Monitor
from pulsecheck.repository import Repository

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 60.0


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class Scheduler:
    """Run one probe cycle immediately, then one per ``interval_s``.

    A cycle waits for all of its probes before the next one may start, so
    probe sets of consecutive cycles never interleave. A cycle that overruns
    the interval delays the next tick instead of stacking ticks up.
    """

    def __init__(
        self,
        repository: Repository,
        checker: Checker,
        *,
        interval_s: float = DEFAULT_INTERVAL_S,
    ) -> None:
        self.repository = repository
        self.checker = checker
        self.interval_s = interval_s if interval_s > 0 else DEFAULT_INTERVAL_S
        self.cycles_completed = 0
        self._state = SchedulerState.IDLE
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    async def start(self) -> None:
        """Launch the background loop. No-op when already running."""
        async with self._lock:
            if self._state is SchedulerState.RUNNING:
                return
            self._state = SchedulerState.RUNNING
            self._task = asyncio.create_task(self._loop(), name="pulsecheck-scheduler")
            logger.info("Scheduler started", extra={"interval_s": self.interval_s})

    async def stop(self) -> None:
        """Cancel the loop and wait until it and any in-flight cycle drain.

        No-op when idle.
        """
        async with self._lock:
            if self._state is SchedulerState.IDLE:
                return
            self._state = SchedulerState.IDLE
            task, self._task = self._task, None
            if task is not None:
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
            logger.info("Scheduler stopped", extra={"cycles_completed": self.cycles_completed})

    async def run_cycle(self) -> int:
        """Probe every stored monitor once and return how many were probed.

        Listing failures skip the cycle silently; the next tick retries.
        """
        try:
            monitors = await self.repository.list_monitors()
        except Exception:
            return 0
        if not monitors:
            return 0

        async with asyncio.TaskGroup() as group:
            for monitor in monitors:
                group.create_task(self._check(monitor))

        self.cycles_completed += 1
        return len(monitors)

    async def _check(self, monitor: Monitor) -> None:
        try:
            await self.checker.verify_monitor(monitor)
        except Exception:
            logger.exception(
                "Failed to check monitor",
                extra={"monitor_id": monitor.id, "url": monitor.url},
            )

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            await self.run_cycle()
            next_tick += self.interval_s
            now = loop.time()
            if next_tick > now:
                await asyncio.sleep(next_tick - now)
            else:
                # Overrun: run right away and drop the other missed ticks.
                next_tick += ((now - next_tick) // self.interval_s) * self.interval_s

    async def __aenter__(self) -> Scheduler:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()
