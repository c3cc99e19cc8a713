"""Set stopwatch and the countdown that precedes a timed set."""

from __future__ import annotations

import logging
import math
from typing import Callable

from workout_state.clock import Clock
from workout_state.events import (
    CountdownComplete,
    CountdownTick,
    SessionEvent,
    SetStarted,
)

TICK_INTERVAL = 1.0


class SetTimerManager:
    """Measure the working set and run the optional pre-set countdown.

    The stopwatch and the countdown are independent, but starting a
    countdown always clears the stopwatch so two sets are never timed as
    overlapping.
    """

    def __init__(self, clock: Clock, emit: Callable[[SessionEvent], None]):
        self._clock = clock
        self._emit = emit
        self._start_time: float | None = None
        self._exercise_index: int | None = None
        self._countdown_event = None
        self._countdown_start: float | None = None
        self._countdown_seconds = 0
        self._countdown_remaining: int | None = None
        self._countdown_exercise_index: int | None = None

    # ------------------------------------------------------------------
    # Stopwatch
    # ------------------------------------------------------------------

    def mark_start(self, exercise_index: int) -> None:
        """Start timing the set for ``exercise_index``."""
        self._start_time = self._clock.now()
        self._exercise_index = exercise_index
        logging.debug("Set started for exercise %s", exercise_index)
        self._emit(SetStarted(exercise_index=exercise_index))

    def get_start_time(self) -> float | None:
        return self._start_time

    def get_exercise_index(self) -> int | None:
        return self._exercise_index

    def is_active(self) -> bool:
        return self._start_time is not None

    def clear(self) -> None:
        self._start_time = None
        self._exercise_index = None

    def get_duration(self) -> int | None:
        """Return whole seconds since the set started, or ``None``."""
        if self._start_time is None:
            return None
        return math.floor(self._clock.now() - self._start_time)

    # ------------------------------------------------------------------
    # Countdown
    # ------------------------------------------------------------------

    def start_with_countdown(self, exercise_index: int, seconds: int) -> None:
        self.cancel_countdown()
        self.clear()
        if seconds <= 0:
            self._emit(CountdownComplete(exercise_index=exercise_index))
            self.mark_start(exercise_index)
            return

        self._countdown_start = self._clock.now()
        self._countdown_seconds = seconds
        self._countdown_remaining = seconds
        self._countdown_exercise_index = exercise_index
        self._emit(CountdownTick(remaining=seconds, exercise_index=exercise_index))
        self._countdown_event = self._clock.schedule_interval(
            self._countdown_tick, TICK_INTERVAL
        )

    def _countdown_tick(self, dt) -> None:
        if self._countdown_remaining is None:
            return
        elapsed = math.floor(self._clock.now() - self._countdown_start)
        remaining = max(0, self._countdown_seconds - elapsed)
        exercise_index = self._countdown_exercise_index
        if remaining > 0:
            self._countdown_remaining = remaining
            self._emit(CountdownTick(remaining=remaining, exercise_index=exercise_index))
            return
        self.cancel_countdown()
        self._emit(CountdownComplete(exercise_index=exercise_index))
        self.mark_start(exercise_index)

    def is_countdown_active(self) -> bool:
        return self._countdown_remaining is not None and self._countdown_remaining > 0

    def get_countdown_remaining(self) -> int | None:
        return self._countdown_remaining

    def cancel_countdown(self) -> None:
        if self._countdown_event is not None:
            self._countdown_event.cancel()
            self._countdown_event = None
        self._countdown_start = None
        self._countdown_remaining = None
        self._countdown_exercise_index = None

    def remap_exercise_index(self, mapping: dict[int, int | None]) -> None:
        """Move the stopwatch and countdown along with their exercises.

        Timers that belong to a removed exercise (mapped to ``None``) stop.
        """
        if self._exercise_index is not None:
            new_index = mapping.get(self._exercise_index)
            if new_index is None:
                self.clear()
            else:
                self._exercise_index = new_index
        if self._countdown_exercise_index is not None:
            new_index = mapping.get(self._countdown_exercise_index)
            if new_index is None:
                self.cancel_countdown()
            else:
                self._countdown_exercise_index = new_index

    def destroy(self) -> None:
        self.cancel_countdown()
        self.clear()
