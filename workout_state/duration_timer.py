"""Session duration ticker."""

from __future__ import annotations

import math
from typing import Callable

from workout_state.clock import Clock
from workout_state.events import DurationTick, SessionEvent

TICK_INTERVAL = 1.0


class DurationTimerManager:
    """Publish the elapsed session time once per second.

    ``get_start_time`` returns the session start in epoch seconds (or
    ``None``) and ``is_counting`` tells whether the session has any logged
    work yet; until then the elapsed time stays at 0.
    """

    def __init__(
        self,
        clock: Clock,
        emit: Callable[[SessionEvent], None],
        get_start_time: Callable[[], float | None],
        is_counting: Callable[[], bool],
    ):
        self._clock = clock
        self._emit = emit
        self._get_start_time = get_start_time
        self._is_counting = is_counting
        self._event = None

    def start(self) -> None:
        self.stop()
        self._emit_elapsed(0)
        self._event = self._clock.schedule_interval(self._emit_elapsed, TICK_INTERVAL)

    def stop(self) -> None:
        if self._event is not None:
            self._event.cancel()
            self._event = None

    def is_running(self) -> bool:
        return self._event is not None

    def _emit_elapsed(self, dt) -> None:
        self._emit(DurationTick(elapsed=self.get_elapsed()))

    def get_elapsed(self) -> int:
        start = self._get_start_time()
        if start is None or not self._is_counting():
            return 0
        return max(0, math.floor(self._clock.now() - start))
