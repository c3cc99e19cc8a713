"""Time source and callback scheduling used by the timers.

Every timer in the engine is a callback scheduled on a single clock.  In the
application that clock is Kivy's event loop; tests inject a clock whose time
only moves when told to.  Callbacks receive the elapsed ``dt`` argument, the
same convention :class:`kivy.clock.Clock` uses.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Protocol


class ScheduledEvent(Protocol):
    def cancel(self) -> None:
        ...


class Clock(Protocol):
    def now(self) -> float:
        """Return the current time in seconds since the epoch."""

    def schedule_once(
        self, callback: Callable[[float], Any], timeout: float = 0
    ) -> ScheduledEvent:
        ...

    def schedule_interval(
        self, callback: Callable[[float], Any], interval: float
    ) -> ScheduledEvent:
        ...


class KivyClock:
    """Clock backed by :data:`kivy.clock.Clock`.

    ``now`` reports wall-clock time so that rest periods keep counting while
    the app is suspended; the next tick simply sees a larger gap.
    """

    def __init__(self):
        from kivy.clock import Clock as _KivyClock

        self._clock = _KivyClock

    def now(self) -> float:
        return time.time()

    def schedule_once(self, callback, timeout: float = 0):
        return self._clock.schedule_once(callback, timeout)

    def schedule_interval(self, callback, interval: float):
        return self._clock.schedule_interval(callback, interval)
