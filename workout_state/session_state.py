"""Active workout session state and timer coordination.

:class:`SessionStateManager` owns the single active :class:`Session`.  All
mutations go through its commands, which follow one order: change the
in-memory session, mark it dirty, schedule (or flush) the autosave, then
notify.  Subscribers therefore always observe the already-mutated state
while persistence catches up a moment later.

Three timers cooperate with the session: the rest timer between sets, the
countdown before a timed set and the set stopwatch.  At most one of them runs
at a time; every switch between them is made explicitly here.  The timers
never touch the session themselves, they only emit events which the manager
turns into state changes and re-publishes.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Union

from workout_state import (
    DEFAULT_AUTOSAVE_DELAY,
    DEFAULT_REPS_MAX,
    DEFAULT_REPS_MIN,
    DEFAULT_SETS_PER_EXERCISE,
)
from workout_state import metrics
from workout_state.autosave import AutosaveScheduler
from workout_state.clock import Clock, KivyClock
from workout_state.duration_timer import DurationTimerManager
from workout_state.errors import InvalidStateError, ValidationError
from workout_state.events import (
    CountdownTick,
    DurationTick,
    EventBus,
    Handler,
    SessionEvent,
    SetLogged,
    TimerCompleted,
    TimerTick,
)
from workout_state.metrics import ExerciseCompletion
from workout_state.models import (
    LoggedSet,
    MuscleEngagement,
    RestPeriodData,
    RestTimerState,
    Session,
    SessionExercise,
    SessionStatus,
    WorkoutExercise,
    WorkoutTemplate,
    format_timestamp,
    generate_session_id,
    parse_timestamp,
)
from workout_state.rest_timer import RestTimerManager
from workout_state.set_timer import SetTimerManager
from workout_state.settings import Settings
from workout_state.store import SessionStore, WorkoutProvider

# High frequency events only reach ``on`` handlers, not state listeners.
_TICK_EVENTS = (TimerTick, CountdownTick, DurationTick)

RPE_MIN = 1
RPE_MAX = 10

ExerciseSpec = Union[WorkoutExercise, SessionExercise]


def _validate_weight(weight) -> None:
    if weight is None or weight <= 0:
        raise ValidationError(f"weight must be greater than 0, got {weight!r}")


def _validate_reps(reps) -> None:
    if reps is None or reps <= 0:
        raise ValidationError(f"reps must be greater than 0, got {reps!r}")


def _validate_rpe(rpe) -> None:
    if rpe is not None and not RPE_MIN <= rpe <= RPE_MAX:
        raise ValidationError(f"rpe must be between {RPE_MIN} and {RPE_MAX}, got {rpe!r}")


class SessionStateManager:
    """Manage the active workout session and its timers."""

    def __init__(
        self,
        store: SessionStore,
        settings: Settings | None = None,
        clock: Clock | None = None,
        workouts: WorkoutProvider | None = None,
        autosave_delay: float = DEFAULT_AUTOSAVE_DELAY,
    ):
        self._store = store
        self._settings = settings if settings is not None else Settings()
        self._clock = clock if clock is not None else KivyClock()
        self._workouts = workouts
        self._session: Session | None = None
        self._current_exercise = 0
        self._dirty = False
        self._listeners: list[Callable[[], None]] = []
        self._bus = EventBus()
        self._autosave = AutosaveScheduler(self._clock, autosave_delay)
        self._rest_timer = RestTimerManager(self._clock, self._handle_timer_event)
        self._set_timer = SetTimerManager(self._clock, self._handle_timer_event)
        self._duration_timer = DurationTimerManager(
            self._clock,
            self._handle_timer_event,
            self._session_start_seconds,
            self.is_in_progress,
        )

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def settings(self) -> Settings:
        return self._settings

    def update_settings(self, settings: Settings) -> None:
        self._settings = settings
        self._notify_listeners()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_workout(self, template: WorkoutTemplate) -> Session:
        """Start a new session with the exercises of ``template``."""
        exercises = [SessionExercise.from_workout_exercise(item) for item in template.exercises]
        return self._begin(exercises, template.name)

    def start_empty_workout(self) -> Session:
        return self._begin([], None)

    def start_workout_by_name(self, name: str) -> Session:
        if self._workouts is None:
            raise ValidationError("No workout provider configured")
        template = self._workouts.get_workout(name)
        if template is None:
            raise ValidationError(f"Workout '{name}' not found")
        return self.start_workout(template)

    def _begin(self, exercises: list[SessionExercise], workout_ref: str | None) -> Session:
        # Replacing a session is caller policy; only its timers are ours to stop.
        self._stop_all_timers()
        self._autosave.cancel()
        now = self._clock.now()
        started = format_timestamp(now)
        self._session = Session(
            id=generate_session_id(now, workout_ref),
            date=started[:10],
            start_time=started,
            workout_ref=workout_ref,
            exercises=exercises,
        )
        self._current_exercise = 0
        self._commit()
        self._duration_timer.start()
        logging.info("Session %s started", self._session.id)
        self._notify_listeners()
        return self._session

    def load_active_session(self) -> bool:
        """Restore a persisted active session, returning ``True`` on success."""
        try:
            session = self._store.load_active_session()
        except Exception:
            logging.exception("Failed to load active session")
            return False
        if session is None or session.status != SessionStatus.ACTIVE:
            return False
        self._stop_all_timers()
        self._autosave.cancel()
        self._session = session
        self._current_exercise = 0
        self._dirty = False
        self._duration_timer.start()
        logging.info("Session %s restored", session.id)
        self._notify_listeners()
        return True

    def finish_session(self) -> Session | None:
        """Complete, persist and archive the active session.

        Returns the finished session, or ``None`` if there was none.  A
        session without any completed set cannot be finished.  When the store
        fails the session stays active so the caller can retry.
        """
        session = self._session
        if session is None:
            return None
        if not metrics.has_completed_work(session):
            raise InvalidStateError("Cannot finish a session without completed sets")

        self._stop_all_timers()
        session.status = SessionStatus.COMPLETED
        session.end_time = format_timestamp(self._clock.now())
        self._dirty = True
        try:
            self._autosave.flush(self._save)
            self._store.archive_completed_session(session)
        except Exception:
            session.status = SessionStatus.ACTIVE
            session.end_time = None
            self._restore_active_record()
            self._duration_timer.start()
            self._notify_listeners()
            raise

        try:
            self._store.delete_active_session()
        except Exception:
            # the archived copy exists; a stale completed record is ignored on load
            logging.exception("Could not remove active record of %s", session.id)

        self._session = None
        self._current_exercise = 0
        self._dirty = False
        logging.info("Session %s finished", session.id)
        self._notify_listeners()
        return session

    def discard_session(self) -> None:
        """Throw the active session away.  Calling it again is a no-op."""
        session = self._session
        if session is None:
            return
        self._stop_all_timers()
        self._autosave.cancel()
        session.status = SessionStatus.DISCARDED
        self._session = None
        self._current_exercise = 0
        self._dirty = False
        logging.info("Session %s discarded", session.id)
        try:
            self._store.delete_active_session()
        finally:
            self._notify_listeners()

    def teardown(self) -> None:
        """Stop every timer and write out unsaved changes."""
        self._stop_all_timers()
        if self._session is not None and self._dirty:
            self._autosave.flush(self._save)
        else:
            self._autosave.cancel()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_active_session(self) -> bool:
        return self._session is not None

    def get_session(self) -> Session | None:
        return self._session

    def is_in_progress(self) -> bool:
        """Return ``True`` once the active session has a completed set."""
        return self._session is not None and metrics.has_completed_work(self._session)

    def is_dirty(self) -> bool:
        return self._dirty

    def count_total_completed_sets(self) -> int:
        if self._session is None:
            return 0
        return metrics.count_total_completed_sets(self._session)

    def get_exercise_completion(self, index: int) -> ExerciseCompletion:
        if self._session is None:
            return ExerciseCompletion(0, 0, False, False)
        return metrics.exercise_completion(self._session, index)

    def get_elapsed_duration(self) -> int:
        return self._duration_timer.get_elapsed()

    def get_exercise(self, index: int) -> SessionExercise | None:
        if self._session is None or index < 0 or index >= len(self._session.exercises):
            return None
        return self._session.exercises[index]

    def get_current_exercise_index(self) -> int:
        return self._current_exercise

    def get_current_exercise(self) -> SessionExercise | None:
        return self.get_exercise(self._current_exercise)

    def get_last_set(self, exercise_index: int) -> LoggedSet | None:
        exercise = self.get_exercise(exercise_index)
        if exercise is None or not exercise.sets:
            return None
        return exercise.sets[-1]

    # ------------------------------------------------------------------
    # Exercise operations
    # ------------------------------------------------------------------

    def set_current_exercise_index(self, index: int) -> None:
        """Select the exercise at ``index``; a running rest timer is stopped."""
        self._require_exercise(index)
        if index != self._current_exercise:
            self._rest_timer.cancel()
        self._current_exercise = index
        self._notify_listeners()

    def add_exercise(
        self,
        name: str,
        target_sets: int = DEFAULT_SETS_PER_EXERCISE,
        target_reps_min: int = DEFAULT_REPS_MIN,
        target_reps_max: int = DEFAULT_REPS_MAX,
        rest_seconds: int | None = None,
    ) -> SessionExercise:
        session = self._require_session()
        if not name or not name.strip():
            raise ValidationError("exercise name cannot be empty")
        if rest_seconds is None:
            rest_seconds = self._settings.default_rest_seconds
        if target_sets <= 0:
            raise ValidationError("target_sets must be greater than 0")
        if target_reps_min <= 0 or target_reps_max < target_reps_min:
            raise ValidationError("target reps must satisfy 0 < min <= max")
        if rest_seconds <= 0:
            raise ValidationError("rest_seconds must be greater than 0")

        exercise = SessionExercise(
            exercise_name=name.strip(),
            target_sets=target_sets,
            target_reps_min=target_reps_min,
            target_reps_max=target_reps_max,
            rest_seconds=rest_seconds,
        )
        session.exercises.append(exercise)
        self._commit()
        self._notify_listeners()
        return exercise

    def remove_exercise(self, index: int) -> None:
        session = self._require_session()
        self._require_exercise(index)
        before = list(session.exercises)
        session.exercises.pop(index)
        self._remap_timers(before)

        if self._current_exercise > index:
            self._current_exercise -= 1
        if self._current_exercise >= len(session.exercises):
            self._current_exercise = max(0, len(session.exercises) - 1)
        self._commit()
        self._notify_listeners()

    def reorder_exercises(self, from_index: int, to_index: int) -> None:
        """Move an exercise; its logged sets and timers move with it."""
        session = self._require_session()
        self._require_exercise(from_index)
        self._require_exercise(to_index)
        before = list(session.exercises)
        exercise = session.exercises.pop(from_index)
        session.exercises.insert(to_index, exercise)
        self._remap_timers(before)

        # keep the current index on the same exercise
        current = self._current_exercise
        if current == from_index:
            self._current_exercise = to_index
        elif from_index < current <= to_index:
            self._current_exercise -= 1
        elif to_index <= current < from_index:
            self._current_exercise += 1
        self._commit()
        self._notify_listeners()

    def update_exercises(self, new_list: Iterable[ExerciseSpec]) -> None:
        """Apply an updated exercise list while keeping logged sets.

        Existing exercises are matched by name (duplicates in order) and take
        the new targets; their sets are preserved.  Unmatched entries become
        new exercises.  Unmatched old exercises are dropped unless they hold
        completed sets, in which case they are kept at the end of the list.
        """
        session = self._require_session()
        before = list(session.exercises)
        pool: dict[str, list[SessionExercise]] = {}
        for existing in before:
            pool.setdefault(existing.exercise_name, []).append(existing)
        current = self.get_current_exercise()

        merged: list[SessionExercise] = []
        for item in new_list:
            matches = pool.get(item.exercise_name)
            if matches:
                exercise = matches.pop(0)
                exercise.target_sets = item.target_sets
                exercise.target_reps_min = item.target_reps_min
                exercise.target_reps_max = item.target_reps_max
                exercise.rest_seconds = item.rest_seconds
            else:
                exercise = SessionExercise(
                    exercise_name=item.exercise_name,
                    target_sets=item.target_sets,
                    target_reps_min=item.target_reps_min,
                    target_reps_max=item.target_reps_max,
                    rest_seconds=item.rest_seconds,
                    sets=list(getattr(item, "sets", [])),
                )
            merged.append(exercise)

        unmatched = {id(ex) for matches in pool.values() for ex in matches}
        for leftover in before:
            if id(leftover) not in unmatched:
                continue
            if any(s.completed for s in leftover.sets):
                logging.info(
                    "Keeping '%s' with logged sets after workout update",
                    leftover.exercise_name,
                )
                merged.append(leftover)
            else:
                logging.debug("Dropping '%s' after workout update", leftover.exercise_name)

        session.exercises = merged
        self._remap_timers(before)
        self._current_exercise = next(
            (idx for idx, ex in enumerate(merged) if ex is current),
            min(self._current_exercise, max(0, len(merged) - 1)),
        )
        self._commit()
        self._notify_listeners()

    def on_workout_changed(self, template: WorkoutTemplate) -> bool:
        """React to an edited workout definition.

        The active session follows the change only if it was started from
        that workout.  Returns ``True`` when the session was updated.
        """
        if self._session is None or self._session.workout_ref != template.name:
            return False
        self.update_exercises(template.exercises)
        return True

    def set_exercise_rpe(self, exercise_index: int, rpe: float) -> None:
        exercise = self._require_exercise(exercise_index)
        if rpe is None:
            raise ValidationError("rpe is required")
        _validate_rpe(rpe)
        exercise.rpe = rpe
        self._commit()
        self._notify_listeners()

    def set_exercise_muscle_engagement(self, exercise_index: int, value) -> None:
        exercise = self._require_exercise(exercise_index)
        try:
            engagement = MuscleEngagement(value)
        except ValueError:
            raise ValidationError(f"Unknown muscle engagement '{value}'") from None
        exercise.muscle_engagement = engagement
        self._commit()
        self._notify_listeners()

    def set_notes(self, notes: str | None) -> None:
        session = self._require_session()
        session.notes = notes or None
        self._commit()
        self._notify_listeners()

    # ------------------------------------------------------------------
    # Set operations
    # ------------------------------------------------------------------

    def log_set(
        self, exercise_index: int, weight: float, reps: int, rpe: float | None = None
    ) -> LoggedSet:
        """Record a completed set for the exercise at ``exercise_index``.

        Pending rest data is attached to the new set and then dropped.  If
        the set stopwatch was running, the average rep duration is stored and
        the stopwatch is reset.
        """
        exercise = self._require_exercise(exercise_index)
        _validate_weight(weight)
        _validate_reps(reps)
        _validate_rpe(rpe)

        now = self._clock.now()
        logged = LoggedSet(
            weight=weight,
            reps=reps,
            completed=True,
            timestamp=format_timestamp(now),
            rpe=rpe,
        )

        rest = self._rest_timer.get_rest_period_data()
        set_start = self._set_timer.get_start_time()
        if rest is not None:
            # rest ends when the set began, or now if the set was not timed
            rest_end = set_start if set_start is not None and set_start >= rest.start_time else now
            logged.actual_rest_seconds = int(max(0.0, rest_end - rest.start_time))
            logged.extra_rest_seconds = rest.extra_seconds
            self._rest_timer.clear_rest_period_data()
        duration = self._set_timer.get_duration()
        if duration is not None:
            logged.avg_rep_duration = duration / reps
        self._set_timer.destroy()

        exercise.sets.append(logged)
        set_index = len(exercise.sets) - 1
        self._commit()
        self._bus.publish(SetLogged(exercise_index=exercise_index, set_index=set_index))
        self._notify_listeners()

        completed = metrics.count_completed_sets(self._session, exercise_index)
        if metrics.should_auto_start_rest_timer(
            self._settings.auto_start_rest_timer, completed, exercise.target_sets
        ):
            self._rest_timer.start(exercise.rest_seconds, exercise_index)
        return logged

    def edit_set(
        self,
        exercise_index: int,
        set_index: int,
        weight: float | None = None,
        reps: int | None = None,
        rpe: float | None = None,
    ) -> LoggedSet:
        """Update fields of a logged set; ``None`` leaves a field unchanged."""
        logged = self._require_set(exercise_index, set_index)
        if weight is not None:
            _validate_weight(weight)
        if reps is not None:
            _validate_reps(reps)
        _validate_rpe(rpe)

        if weight is not None:
            logged.weight = weight
        if reps is not None:
            logged.reps = reps
        if rpe is not None:
            logged.rpe = rpe
        self._commit()
        self._notify_listeners()
        return logged

    def delete_set(self, exercise_index: int, set_index: int) -> None:
        self._require_set(exercise_index, set_index)
        self._session.exercises[exercise_index].sets.pop(set_index)
        self._commit()
        self._notify_listeners()

    # ------------------------------------------------------------------
    # Rest timer
    # ------------------------------------------------------------------

    def start_rest_timer(self, seconds: int | None = None, exercise_index: int | None = None) -> None:
        """Start resting; defaults to the exercise's own rest duration."""
        index = self._current_exercise if exercise_index is None else exercise_index
        exercise = self._require_exercise(index)
        if seconds is None:
            seconds = exercise.rest_seconds
        if seconds <= 0:
            raise ValidationError("rest seconds must be greater than 0")
        self._set_timer.destroy()
        self._rest_timer.start(seconds, index)

    def add_rest_time(self, seconds: int) -> None:
        self._require_session()
        self._rest_timer.add_time(seconds)

    def cancel_rest_timer(self) -> None:
        self._rest_timer.cancel()

    def get_rest_time_remaining(self) -> int:
        return self._rest_timer.get_remaining()

    def is_rest_timer_active(self) -> bool:
        return self._rest_timer.is_active()

    def get_rest_timer(self) -> RestTimerState | None:
        return self._rest_timer.get_state()

    def get_rest_period_data(self) -> RestPeriodData | None:
        return self._rest_timer.get_rest_period_data()

    # ------------------------------------------------------------------
    # Set timer
    # ------------------------------------------------------------------

    def mark_set_start(self, exercise_index: int) -> None:
        """Start the set stopwatch now, ending any rest or countdown."""
        self._require_exercise(exercise_index)
        self._rest_timer.cancel()
        self._set_timer.cancel_countdown()
        self._set_timer.mark_start(exercise_index)

    def start_set_with_countdown(self, exercise_index: int, seconds: int | None = None) -> None:
        self._require_exercise(exercise_index)
        if seconds is None:
            seconds = self._settings.countdown_seconds
        self._rest_timer.cancel()
        self._set_timer.start_with_countdown(exercise_index, seconds)

    def cancel_countdown(self) -> None:
        self._set_timer.cancel_countdown()
        self._notify_listeners()

    def is_countdown_active(self) -> bool:
        return self._set_timer.is_countdown_active()

    def get_countdown_remaining(self) -> int | None:
        return self._set_timer.get_countdown_remaining()

    def is_set_timer_active(self) -> bool:
        return self._set_timer.is_active()

    def get_set_duration(self) -> int | None:
        return self._set_timer.get_duration()

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Call ``listener`` now and after every state change."""
        self._listeners.append(listener)
        self._call_listener(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    def on(self, event_name: str, handler: Handler) -> Callable[[], None]:
        return self._bus.on(event_name, handler)

    def _notify_listeners(self) -> None:
        for listener in list(self._listeners):
            self._call_listener(listener)

    @staticmethod
    def _call_listener(listener: Callable[[], None]) -> None:
        try:
            listener()
        except Exception:
            logging.exception("State listener failed")

    def _handle_timer_event(self, event: SessionEvent) -> None:
        self._bus.publish(event)
        if isinstance(event, _TICK_EVENTS):
            return
        if (
            isinstance(event, TimerCompleted)
            and self._session is not None
            and not self._set_timer.is_active()
            and not self._set_timer.is_countdown_active()
        ):
            # rest is over, the next set starts being timed
            self._set_timer.mark_start(event.exercise_index)
        self._notify_listeners()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_session(self) -> Session:
        if self._session is None:
            raise InvalidStateError("No active session")
        return self._session

    def _require_exercise(self, index: int) -> SessionExercise:
        session = self._require_session()
        if not isinstance(index, int) or index < 0 or index >= len(session.exercises):
            raise ValidationError(f"Exercise index {index} out of range")
        return session.exercises[index]

    def _require_set(self, exercise_index: int, set_index: int) -> LoggedSet:
        exercise = self._require_exercise(exercise_index)
        if not isinstance(set_index, int) or set_index < 0 or set_index >= len(exercise.sets):
            raise ValidationError(
                f"Set index {set_index} out of range for exercise {exercise_index}"
            )
        return exercise.sets[set_index]

    def _commit(self) -> None:
        self._dirty = True
        self._autosave.schedule(self._save)

    def _save(self) -> None:
        session = self._session
        if session is None:
            return
        self._store.save_active_session(session)
        self._dirty = False

    def _restore_active_record(self) -> None:
        """Rewrite the stored record as active after an aborted finish.

        The record may already say ``completed``, which would hide the
        session on the next load.  If the store is still failing, the
        autosave keeps retrying.
        """
        self._dirty = True
        try:
            self._autosave.flush(self._save)
        except Exception:
            self._commit()

    def _remap_timers(self, before: list[SessionExercise]) -> None:
        """Point timer exercise indices at the same exercises as before."""
        after = self._session.exercises
        mapping = {
            old: next((new for new, ex in enumerate(after) if ex is exercise), None)
            for old, exercise in enumerate(before)
        }
        self._rest_timer.remap_exercise_index(mapping)
        self._set_timer.remap_exercise_index(mapping)

    def _stop_all_timers(self) -> None:
        self._rest_timer.destroy()
        self._set_timer.destroy()
        self._duration_timer.stop()

    def _session_start_seconds(self) -> float | None:
        if self._session is None:
            return None
        return parse_timestamp(self._session.start_time)
