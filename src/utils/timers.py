"""
Cancellable deferred actions on top of a swappable clock.

Every timer in the terminal (scan buffer expiry, search debounce, catalog
safety-net refresh, feed polling) goes through a Clock so that tests can
drive time with VirtualClock instead of sleeping.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Any, Callable, List, Optional, Protocol, Tuple


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...


class AsyncioClock:
    """Clock backed by the running asyncio loop (the one Textual runs)."""

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class _VirtualHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualClock:
    """
    Manually advanced clock for tests.
    Callbacks fire in due-time order (ties in scheduling order) during advance().
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, _VirtualHandle, Callable[[], Any]]] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        handle = _VirtualHandle()
        heapq.heappush(
            self._queue, (self._now + max(delay, 0.0), next(self._seq), handle, callback)
        )
        return handle

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            self._now = due
            if not handle.cancelled:
                callback()
        self._now = target

    @property
    def pending_count(self) -> int:
        return sum(1 for entry in self._queue if not entry[2].cancelled)


class DeferredAction:
    """
    Run `callback` once, `delay` seconds after the most recent arm().
    arm() while pending pushes the deadline back; cancel() drops it.
    """

    def __init__(self, clock: Clock, delay: float, callback: Callable[[], Any]):
        self._clock = clock
        self.delay = delay
        self._callback = callback
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self) -> None:
        self.cancel()
        self._handle = self._clock.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()


class Debouncer:
    """Deliver only the last pushed value, once input has been quiet for `delay`."""

    def __init__(self, clock: Clock, delay: float, callback: Callable[[Any], Any]):
        self._callback = callback
        self._value: Any = None
        self._action = DeferredAction(clock, delay, self._flush)

    @property
    def pending(self) -> bool:
        return self._action.pending

    def push(self, value: Any) -> None:
        self._value = value
        self._action.arm()

    def cancel(self) -> None:
        self._action.cancel()

    def _flush(self) -> None:
        self._callback(self._value)


class PeriodicAction:
    """Call `callback` every `interval` seconds until stop()."""

    def __init__(self, clock: Clock, interval: float, callback: Callable[[], Any]):
        self._callback = callback
        self._action = DeferredAction(clock, interval, self._tick)
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._running = True
        self._action.arm()

    def stop(self) -> None:
        self._running = False
        self._action.cancel()

    def _tick(self) -> None:
        # re-arm first so a failing callback does not stop the schedule
        if self._running:
            self._action.arm()
        self._callback()
