"""Shared constants and public entry points for the session engine."""

from __future__ import annotations

# Default values used throughout the engine
DEFAULT_SETS_PER_EXERCISE = 3
DEFAULT_REPS_MIN = 8
DEFAULT_REPS_MAX = 12
DEFAULT_REST_DURATION = 120

# Seconds counted down before the first set of an exercise
DEFAULT_COUNTDOWN_SECONDS = 5

# Quiet window before a debounced autosave is written
DEFAULT_AUTOSAVE_DELAY = 2.0

from workout_state.errors import (  # noqa: E402
    InvalidStateError,
    PersistenceError,
    ValidationError,
    WorkoutStateError,
)
from workout_state.models import (  # noqa: E402
    LoggedSet,
    MuscleEngagement,
    Session,
    SessionExercise,
    SessionStatus,
    WorkoutExercise,
    WorkoutTemplate,
)
from workout_state.settings import Settings  # noqa: E402
from workout_state.session_state import (  # noqa: E402
    ExerciseCompletion,
    SessionStateManager,
)

__all__ = [
    "DEFAULT_SETS_PER_EXERCISE",
    "DEFAULT_REPS_MIN",
    "DEFAULT_REPS_MAX",
    "DEFAULT_REST_DURATION",
    "DEFAULT_COUNTDOWN_SECONDS",
    "DEFAULT_AUTOSAVE_DELAY",
    "ExerciseCompletion",
    "InvalidStateError",
    "LoggedSet",
    "MuscleEngagement",
    "PersistenceError",
    "Session",
    "SessionExercise",
    "SessionStateManager",
    "SessionStatus",
    "Settings",
    "ValidationError",
    "WorkoutExercise",
    "WorkoutStateError",
    "WorkoutTemplate",
]
