"""Cancellable delayed callbacks for the synchronization controller.

The controller only needs one primitive: run a callback after a delay, and be
able to cancel it before it fires. :class:`Scheduler` is that port, with two
implementations:

* :class:`AsyncioScheduler` -- wraps :meth:`asyncio.AbstractEventLoop.call_later`
  for long-running, event-loop driven front-ends.
* :class:`ManualScheduler` -- a virtual clock advanced explicitly. Used by
  tests to assert debounce behaviour deterministically, and by the CLI where
  each command runs to completion and flushes before exiting.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Schedules *callback* to run once after *delay* seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    Args:
        loop: Event loop to schedule on; defaults to the running loop at the
            time of each call.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class _ManualHandle:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual-clock scheduler; nothing fires until the clock is advanced.

    Example::

        scheduler = ManualScheduler()
        scheduler.call_later(0.3, flush)
        scheduler.advance(0.2)   # nothing happens
        scheduler.advance(0.1)   # flush() runs
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._queue: list[tuple[float, int, _ManualHandle]] = []
        self._counter = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self._now + max(delay, 0.0), callback)
        heapq.heappush(self._queue, (handle.due, next(self._counter), handle))
        return handle

    def pending(self) -> int:
        """Number of scheduled callbacks that have not fired or been cancelled."""
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward and fire every callback that became due.

        Callbacks scheduled while advancing fire too if they fall inside the
        window. Returns the number of callbacks run.
        """
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if handle.cancelled:
                continue
            handle.cancelled = True
            handle.callback()
            fired += 1
        self._now = target
        return fired

    def run_pending(self) -> int:
        """Fire every outstanding callback regardless of its due time."""
        fired = 0
        while self._queue:
            due, _, handle = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if handle.cancelled:
                continue
            handle.cancelled = True
            handle.callback()
            fired += 1
        return fired
