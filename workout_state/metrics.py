"""Pure helpers deriving progress figures from a :class:`Session`."""

from __future__ import annotations

from dataclasses import dataclass

from workout_state.models import LoggedSet, Session, SessionExercise, parse_timestamp


def _completed(exercise: SessionExercise) -> list[LoggedSet]:
    return [s for s in exercise.sets if s.completed]


# ----------------------------------------------------------------------
# Exercise level
# ----------------------------------------------------------------------


def count_completed_sets(session: Session, index: int) -> int:
    if index < 0 or index >= len(session.exercises):
        return 0
    return len(_completed(session.exercises[index]))


def is_exercise_complete(session: Session, index: int) -> bool:
    if index < 0 or index >= len(session.exercises):
        return False
    return count_completed_sets(session, index) >= session.exercises[index].target_sets


def calculate_exercise_progress(exercise: SessionExercise) -> float:
    """Return the completed fraction (0-1) of the exercise's target sets."""
    if exercise.target_sets <= 0:
        return 0.0
    return min(len(_completed(exercise)) / exercise.target_sets, 1.0)


def count_total_reps(exercise: SessionExercise) -> int:
    return sum(s.reps for s in _completed(exercise))


def find_max_weight(exercise: SessionExercise) -> float:
    completed = _completed(exercise)
    if not completed:
        return 0
    return max(s.weight for s in completed)


def calculate_exercise_volume(exercise: SessionExercise) -> float:
    return sum(s.weight * s.reps for s in _completed(exercise))


# ----------------------------------------------------------------------
# Session level
# ----------------------------------------------------------------------


def count_total_completed_sets(session: Session) -> int:
    return sum(len(_completed(ex)) for ex in session.exercises)


def count_total_target_sets(session: Session) -> int:
    return sum(ex.target_sets for ex in session.exercises)


def calculate_session_progress(session: Session) -> float:
    target = count_total_target_sets(session)
    if target == 0:
        return 0.0
    return min(count_total_completed_sets(session) / target, 1.0)


def calculate_total_volume(session: Session) -> float:
    return sum(calculate_exercise_volume(ex) for ex in session.exercises)


def has_completed_work(session: Session) -> bool:
    """Return ``True`` if at least one set has been completed.

    This is what makes a session "in progress".
    """
    return any(s.completed for ex in session.exercises for s in ex.sets)


@dataclass(frozen=True)
class ExerciseCompletion:
    completed_sets: int
    target_sets: int
    is_complete: bool
    all_exercises_complete: bool


def exercise_completion(session: Session, index: int) -> ExerciseCompletion:
    """Return progress of one exercise plus whether the whole session is done.

    An out-of-range ``index`` reports zeros.
    """
    if index < 0 or index >= len(session.exercises):
        return ExerciseCompletion(0, 0, False, False)
    return ExerciseCompletion(
        completed_sets=count_completed_sets(session, index),
        target_sets=session.exercises[index].target_sets,
        is_complete=is_exercise_complete(session, index),
        all_exercises_complete=all(
            is_exercise_complete(session, i) for i in range(len(session.exercises))
        ),
    )


def count_completed_exercises(session: Session) -> int:
    return sum(
        1 for idx in range(len(session.exercises)) if is_exercise_complete(session, idx)
    )


def find_first_unfinished_exercise_index(session: Session) -> int:
    """Return the first exercise short of its target sets, or -1."""
    for idx in range(len(session.exercises)):
        if not is_exercise_complete(session, idx):
            return idx
    return -1


def is_session_fully_complete(session: Session) -> bool:
    return bool(session.exercises) and find_first_unfinished_exercise_index(session) == -1


def should_auto_start_rest_timer(
    auto_start_enabled: bool, completed_sets: int, target_sets: int
) -> bool:
    """Rest only follows a set when more sets of the exercise remain."""
    return auto_start_enabled and completed_sets < target_sets


# ----------------------------------------------------------------------
# Display helpers
# ----------------------------------------------------------------------


def format_set(logged: LoggedSet, weight_unit: str = "kg") -> str:
    """Return text such as ``80kg × 10`` followed by any annotations."""

    text = f"{logged.weight:g}{weight_unit} × {logged.reps}"
    notes = []
    if logged.rpe is not None:
        notes.append(f"RPE {logged.rpe:g}")
    if logged.extra_rest_seconds:
        notes.append(f"+{logged.extra_rest_seconds}s rest")
    if logged.avg_rep_duration:
        notes.append(f"{logged.avg_rep_duration:.1f}s/rep")
    if notes:
        text += f" ({', '.join(notes)})"
    return text


def summary(session: Session, weight_unit: str = "kg") -> str:
    """Return a formatted text summary of the session."""

    lines = [f"Workout: {session.workout_ref or 'Freestyle'}"]
    lines.append(f"Start: {session.start_time}")
    if session.end_time:
        lines.append(f"End:   {session.end_time}")
        dur = int(parse_timestamp(session.end_time) - parse_timestamp(session.start_time))
        m, s = divmod(max(0, dur), 60)
        lines.append(f"Duration: {m}m {s}s")
    lines.append(f"Sets: {count_total_completed_sets(session)}")
    lines.append(f"Volume: {calculate_total_volume(session):g}{weight_unit}")
    for ex in session.exercises:
        lines.append(f"\n{ex.exercise_name}")
        for idx, logged in enumerate(_completed(ex), 1):
            lines.append(f"  Set {idx}: {format_set(logged, weight_unit)}")
    return "\n".join(lines)
