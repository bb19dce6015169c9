"""Deadline scheduling for reaction windows, card choices and bot moves.

A Deadline is the cancellation token for one scheduled callback. Whoever
owns a pending record owns its deadline and cancels it when the record
closes early, so a fired callback never has to check whether it is stale.
"""

import asyncio
import heapq
import itertools
import logging
from typing import Callable, List, Optional, Tuple


logger = logging.getLogger(__name__)


class Deadline:
    """Handle for a scheduled callback."""

    def __init__(self, when: float, label: str = ""):
        self.when = when
        self.label = label
        self.cancelled = False
        self.fired = False
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        """Invalidate the callback; safe to call more than once."""
        if not self.active:
            return
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "fired" if self.fired else "active"
        return f"Deadline({self.label!r}, when={self.when:.2f}, {state})"


class Scheduler:
    """Interface: run a callback after a delay unless cancelled first."""

    def now(self) -> float:
        raise NotImplementedError

    def call_later(self, delay: float, callback: Callable[[], None], label: str = "") -> Deadline:
        raise NotImplementedError

    def _fire(self, deadline: Deadline, callback: Callable[[], None]) -> None:
        if not deadline.active:
            return
        deadline.fired = True
        try:
            callback()
        except Exception as e:
            logger.error(f"Scheduled callback {deadline.label!r} failed: {e}", exc_info=True)


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running event loop's call_later."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None], label: str = "") -> Deadline:
        deadline = Deadline(self.now() + delay, label)
        deadline._handle = self.loop.call_later(delay, self._fire, deadline, callback)
        return deadline


class ManualScheduler(Scheduler):
    """Virtual-clock scheduler; callbacks fire only when the clock is advanced.

    Callbacks scheduled while advancing run in the same advance() call if they
    fall inside the window, in deadline order (ties in scheduling order).
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, Deadline, Callable[[], None]]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None], label: str = "") -> Deadline:
        deadline = Deadline(self._now + max(0.0, delay), label)
        heapq.heappush(self._queue, (deadline.when, next(self._counter), deadline, callback))
        return deadline

    @property
    def pending(self) -> List[Deadline]:
        return [entry[2] for entry in sorted(self._queue) if entry[2].active]

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due callbacks. Returns how many fired."""
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, deadline, callback = heapq.heappop(self._queue)
            self._now = max(self._now, when)
            if deadline.active:
                self._fire(deadline, callback)
                fired += 1
        self._now = target
        return fired

    def run_until_idle(self, max_callbacks: int = 100000) -> int:
        """Fire callbacks until nothing active is queued or the bound is hit."""
        fired = 0
        while fired < max_callbacks:
            while self._queue and not self._queue[0][2].active:
                heapq.heappop(self._queue)
            if not self._queue:
                break
            when, _, deadline, callback = heapq.heappop(self._queue)
            self._now = max(self._now, when)
            self._fire(deadline, callback)
            fired += 1
        return fired
