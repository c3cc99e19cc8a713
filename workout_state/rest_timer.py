"""Rest timer between sets.

Remaining time is derived from the absolute start time on every query, the
same way the rest screen compares ``rest_target_time`` against the clock.
Missed ticks or a suspended process therefore never skew the countdown.
"""

from __future__ import annotations

import logging
import math
from typing import Callable

from workout_state.clock import Clock
from workout_state.errors import ValidationError
from workout_state.events import (
    SessionEvent,
    TimerCancelled,
    TimerCompleted,
    TimerExtended,
    TimerStarted,
    TimerTick,
)
from workout_state.models import RestPeriodData, RestTimerState

IDLE = "idle"
RUNNING = "running"
EXPIRED = "expired"
CANCELLED = "cancelled"

TICK_INTERVAL = 1.0


class RestTimerManager:
    """Track one rest period: planned duration, extensions and cancellation.

    The rest-period snapshot outlives the ticking timer.  After the timer
    expires or is cancelled, :meth:`get_rest_period_data` keeps returning it
    until :meth:`clear_rest_period_data` is called.
    """

    def __init__(self, clock: Clock, emit: Callable[[SessionEvent], None]):
        self._clock = clock
        self._emit = emit
        self._state: RestTimerState | None = None
        self._event = None
        self.status = IDLE

    def start(self, duration_seconds: int, exercise_index: int) -> None:
        self._stop_ticking()
        self._state = RestTimerState(
            start_time=self._clock.now(),
            planned_seconds=duration_seconds,
            exercise_index=exercise_index,
        )
        self.status = RUNNING
        self._event = self._clock.schedule_interval(self._tick, TICK_INTERVAL)
        logging.debug(
            "Rest timer started: %ss for exercise %s", duration_seconds, exercise_index
        )
        self._emit(TimerStarted(exercise_index=exercise_index, duration=duration_seconds))

    def add_time(self, seconds: int) -> None:
        if seconds <= 0:
            raise ValidationError("Added rest time must be greater than 0")
        if self.status != RUNNING:
            return
        self._state.extra_seconds += seconds
        self._emit(TimerExtended(additional_seconds=seconds))

    def cancel(self) -> None:
        """Stop ticking while keeping the rest-period data."""
        was_running = self.status == RUNNING
        self._stop_ticking()
        if was_running:
            self.status = CANCELLED
            logging.debug("Rest timer cancelled")
            self._emit(TimerCancelled())

    def _tick(self, dt) -> None:
        # a tick may already be queued when the timer is stopped
        if self.status != RUNNING:
            return
        remaining = self.get_remaining()
        if remaining > 0:
            self._emit(TimerTick(remaining=remaining))
            return
        self._stop_ticking()
        self.status = EXPIRED
        logging.debug("Rest timer expired")
        self._emit(TimerTick(remaining=0))
        self._emit(TimerCompleted(exercise_index=self._state.exercise_index))

    def _stop_ticking(self) -> None:
        if self._event is not None:
            self._event.cancel()
            self._event = None

    def _remaining_exact(self) -> float:
        state = self._state
        total = state.planned_seconds + state.extra_seconds
        return max(0.0, total - (self._clock.now() - state.start_time))

    def get_remaining(self) -> int:
        """Return whole seconds left, rounded up, or 0 when not running."""
        if self.status != RUNNING:
            return 0
        return math.ceil(self._remaining_exact())

    def is_active(self) -> bool:
        return self.status == RUNNING and self._remaining_exact() > 0

    def get_state(self) -> RestTimerState | None:
        return self._state

    def get_rest_period_data(self) -> RestPeriodData | None:
        if self._state is None:
            return None
        return RestPeriodData(
            start_time=self._state.start_time,
            exercise_index=self._state.exercise_index,
            extra_seconds=self._state.extra_seconds,
            planned_seconds=self._state.planned_seconds,
        )

    def remap_exercise_index(self, mapping: dict[int, int | None]) -> None:
        """Follow the rest period's exercise to its new position.

        ``mapping`` maps old exercise indices to new ones, or to ``None`` for
        removed exercises.  A rest period whose exercise was removed is
        cancelled and forgotten.
        """
        if self._state is None:
            return
        new_index = mapping.get(self._state.exercise_index)
        if new_index is None:
            self.cancel()
            self.clear_rest_period_data()
            return
        self._state.exercise_index = new_index

    def clear_rest_period_data(self) -> None:
        """Forget the rest period; a running timer is stopped silently."""
        self._stop_ticking()
        self._state = None
        self.status = IDLE

    def destroy(self) -> None:
        self._stop_ticking()
        self._state = None
        self.status = IDLE
