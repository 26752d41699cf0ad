"""Cancellable timers for the engine and mode controllers.

Every timer a component arms is returned as a :class:`ScheduledTask`
handle. Owners keep the handle and cancel it on ``stop()``; a cancelled
handle never invokes its callback, even if the underlying timer already
became due.

Two schedulers are provided:

- :class:`AsyncioScheduler` arms timers on the running asyncio loop
  (the single cooperative execution context of a live race).
- :class:`VirtualScheduler` keeps a virtual clock that only moves when
  :meth:`VirtualScheduler.advance` is called, for tests and headless races.
"""

import asyncio
import heapq
import itertools
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class _Cancellable(Protocol):
    def cancel(self) -> None: ...


class ScheduledTask:
    """Handle for a single-shot or periodic timer."""

    def __init__(
        self,
        scheduler: "Scheduler",
        callback: Callable[[], None],
        delay_ms: float,
        interval_ms: float | None = None,
        name: str = "",
    ):
        self.name = name
        self.interval_ms = interval_ms
        self._scheduler = scheduler
        self._callback = callback
        self._handle: _Cancellable | None = None
        self._cancelled = False
        self._done = False
        self._arm(delay_ms)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        """True while the task may still fire."""
        return not self._cancelled and not self._done

    def cancel(self) -> None:
        """Cancel the task. Safe to call repeatedly and from its own callback."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _arm(self, delay_ms: float) -> None:
        self._handle = self._scheduler._arm(max(0.0, delay_ms), self._fire)

    def _fire(self) -> None:
        self._handle = None
        if self._cancelled:
            return
        if self.interval_ms is not None:
            self._arm(self.interval_ms)
        else:
            self._done = True
        self._callback()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else ("done" if self._done else "pending")
        return f"<ScheduledTask {self.name or '?'} {state}>"


class Scheduler(ABC):
    """Source of time and timers for race components."""

    @abstractmethod
    def now_ms(self) -> float:
        """Monotonic time in milliseconds."""

    @abstractmethod
    def _arm(self, delay_ms: float, fn: Callable[[], None]) -> _Cancellable:
        """Arm a raw one-shot timer."""

    def call_later(self, delay_ms: float, callback: Callable[[], None], name: str = "") -> ScheduledTask:
        """Run ``callback`` once after ``delay_ms``."""
        return ScheduledTask(self, callback, delay_ms, name=name)

    def call_every(
        self,
        interval_ms: float,
        callback: Callable[[], None],
        name: str = "",
        first_delay_ms: float | None = None,
    ) -> ScheduledTask:
        """Run ``callback`` every ``interval_ms`` until cancelled."""
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        delay = interval_ms if first_delay_ms is None else first_delay_ms
        return ScheduledTask(self, callback, delay, interval_ms=interval_ms, name=name)


class AsyncioScheduler(Scheduler):
    """Scheduler backed by ``loop.call_later``.

    Timers must be armed from inside the running loop unless an explicit
    loop is given.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def now_ms(self) -> float:
        if self._loop is not None:
            return self._loop.time() * 1000
        return time.monotonic() * 1000

    def _arm(self, delay_ms: float, fn: Callable[[], None]) -> _Cancellable:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_ms / 1000, fn)


class _VirtualTimer:
    __slots__ = ("fn", "cancelled")

    def __init__(self, fn: Callable[[], None]):
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler(Scheduler):
    """Deterministic scheduler driven by an explicit virtual clock."""

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)
        self._queue: list[tuple[float, int, _VirtualTimer]] = []
        self._seq = itertools.count()

    def now_ms(self) -> float:
        return self._now

    def _arm(self, delay_ms: float, fn: Callable[[], None]) -> _Cancellable:
        timer = _VirtualTimer(fn)
        heapq.heappush(self._queue, (self._now + delay_ms, next(self._seq), timer))
        return timer

    @property
    def pending(self) -> int:
        """Number of armed, uncancelled timers."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def advance(self, ms: float) -> int:
        """Move the clock forward, firing every timer that becomes due.

        Timers fire in due-time order (ties in arming order) with the clock
        set to their due time, so timers armed by callbacks inside the
        window also fire.

        Returns:
            Number of callbacks fired
        """
        target = self._now + max(0.0, ms)
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = max(self._now, due)
            timer.fn()
            fired += 1
        self._now = target
        return fired

    def run_until(self, predicate: Callable[[], bool], max_ms: float, step_ms: float = 10.0) -> bool:
        """Advance in ``step_ms`` increments until ``predicate`` holds.

        Returns:
            Whether the predicate held before ``max_ms`` elapsed
        """
        elapsed = 0.0
        while elapsed < max_ms:
            if predicate():
                return True
            self.advance(step_ms)
            elapsed += step_ms
        result = predicate()
        if not result:
            logger.debug("run_until gave up after %.0fms", max_ms)
        return result
