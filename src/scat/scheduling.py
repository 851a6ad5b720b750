"""
Deferred callbacks for turn pauses and AI think time.

The engine never sleeps itself; it asks a ``Scheduler`` to run a
continuation after a delay. Tests drain a ``ManualScheduler`` with no
wall-clock waiting, the terminal front end uses ``SleepingScheduler``, and an
asyncio application can use ``AsyncioScheduler``.
"""
from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from typing import Callable, Optional, Protocol

Callback = Callable[[], None]


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callback) -> None:
        """Run ``callback`` once, ``delay`` seconds from now."""


class ManualScheduler:
    """
    Virtual-clock scheduler. Tasks run only when drained, ordered by due time
    and then by the order they were scheduled.
    """

    def __init__(self) -> None:
        self.now: float = 0.0
        self._queue: list[tuple[float, int, Callback]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callback) -> None:
        due = self.now + max(0.0, delay)
        heapq.heappush(self._queue, (due, next(self._counter), callback))

    @property
    def pending(self) -> int:
        return len(self._queue)

    def _wait_until(self, due: float) -> None:
        self.now = max(self.now, due)

    def run_next(self) -> bool:
        """Run the earliest task. Returns False if nothing was queued."""
        if not self._queue:
            return False
        due, _, callback = heapq.heappop(self._queue)
        self._wait_until(due)
        callback()
        return True

    def run_until_idle(self, max_tasks: int = 100_000) -> int:
        """
        Run tasks (including ones scheduled while draining) until the queue
        is empty. Returns the number of tasks run.
        """
        ran = 0
        while self._queue:
            if ran >= max_tasks:
                raise RuntimeError(f"Scheduler still busy after {max_tasks} tasks")
            self.run_next()
            ran += 1
        return ran


class SleepingScheduler(ManualScheduler):
    """ManualScheduler that really waits out each gap, scaled by ``speed``."""

    def __init__(self, speed: float = 1.0, sleep: Callable[[float], None] = time.sleep) -> None:
        super().__init__()
        self.speed = speed
        self._sleep = sleep

    def _wait_until(self, due: float) -> None:
        gap = due - self.now
        if gap > 0 and self.speed > 0:
            self._sleep(gap / self.speed)
        super()._wait_until(due)


class AsyncioScheduler:
    """Maps ``call_later`` onto an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callback) -> None:
        self.loop.call_later(max(0.0, delay), callback)


__all__ = ["AsyncioScheduler", "ManualScheduler", "Scheduler", "SleepingScheduler"]
