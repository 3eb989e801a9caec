"""
Purpose: The single cooperative timeline every deferred callback runs on.
What it does:
Both the periodic tracking tick and the one-shot "hospital alerted" notification
are deferred callbacks. They are scheduled through a Scheduler so the engine
never blocks (no time.sleep) and so tests can drive time deterministically.

- SimulatedScheduler: virtual clock in integer milliseconds, advanced by hand.
- AsyncioScheduler: wall-clock timers on an asyncio event loop.

Rule: One timeline, no threads. Callbacks never run re-entrantly.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, List, Optional, Protocol, Tuple


Callback = Callable[[], None]


class ScheduledHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """
    Anything that can run a callback after a delay and hand back a cancellable handle.
    asyncio's loop.call_later returns a TimerHandle that already satisfies this.
    """
    def call_later(self, delay_ms: int, callback: Callback) -> ScheduledHandle: ...


class TimerHandle:
    """Handle returned by SimulatedScheduler.call_later."""

    __slots__ = ("due_ms", "callback", "_cancelled")

    def __init__(self, due_ms: int, callback: Callback) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        # idempotent
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class SimulatedScheduler:
    """
    Deterministic virtual-time scheduler.

    Usage:
        scheduler = SimulatedScheduler()
        scheduler.call_later(600, on_tick)
        scheduler.advance(600)   # on_tick runs here

    Callbacks run in due-time order; callbacks due at the same instant run in
    the order they were scheduled. A callback may schedule more callbacks; the
    ones that fall inside the advanced window run in the same advance() call.
    """

    def __init__(self) -> None:
        self._now_ms: int = 0
        self._queue: List[Tuple[int, int, TimerHandle]] = []
        self._sequence = itertools.count()
        self._running = False

    @property
    def now_ms(self) -> int:
        return self._now_ms

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have not run and are not cancelled."""
        return sum(1 for _, _, handle in self._queue if not handle.cancelled())

    def call_later(self, delay_ms: int, callback: Callback) -> TimerHandle:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        handle = TimerHandle(self._now_ms + int(delay_ms), callback)
        heapq.heappush(self._queue, (handle.due_ms, next(self._sequence), handle))
        return handle

    def advance(self, delta_ms: int) -> int:
        """
        Move the clock forward by delta_ms, running every callback that becomes due.

        Returns:
            How many callbacks ran.
        """
        if delta_ms < 0:
            raise ValueError("delta_ms must be >= 0")
        if self._running:
            raise RuntimeError("advance() cannot be called from inside a scheduled callback")

        target = self._now_ms + int(delta_ms)
        executed = 0
        self._running = True
        try:
            while self._queue and self._queue[0][0] <= target:
                due_ms, _, handle = heapq.heappop(self._queue)
                if handle.cancelled():
                    continue
                self._now_ms = due_ms
                handle.callback()
                executed += 1
        finally:
            self._running = False
        self._now_ms = target
        return executed

    def run_until_idle(self, limit_ms: Optional[int] = None) -> int:
        """
        Run callbacks until nothing is pending (or until limit_ms of virtual
        time has passed, for timelines that never drain).
        """
        deadline = None if limit_ms is None else self._now_ms + limit_ms
        executed = 0
        while True:
            self._drop_cancelled()
            if not self._queue:
                break
            next_due = self._queue[0][0]
            if deadline is not None and next_due > deadline:
                self._now_ms = deadline
                break
            executed += self.advance(next_due - self._now_ms)
        return executed

    def _drop_cancelled(self) -> None:
        while self._queue and self._queue[0][2].cancelled():
            heapq.heappop(self._queue)


class AsyncioScheduler:
    """
    Wall-clock adapter over an asyncio event loop.

    Args:
        loop: Event loop to schedule on; defaults to the running loop at call time.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay_ms: int, callback: Callback) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_ms / 1000.0, callback)
