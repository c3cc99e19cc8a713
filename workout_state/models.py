"""Session data model.

All records are plain dataclasses.  ``to_dict``/``from_dict`` produce and
accept JSON-serialisable dictionaries so a store can write them verbatim.
Timestamps are ISO 8601 strings in local time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from workout_state import (
    DEFAULT_REPS_MAX,
    DEFAULT_REPS_MIN,
    DEFAULT_REST_DURATION,
    DEFAULT_SETS_PER_EXERCISE,
)


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    DISCARDED = "discarded"


class MuscleEngagement(str, Enum):
    """Answer to "did you feel the correct muscle working?"."""

    YES_CLEARLY = "yes-clearly"
    MODERATELY = "moderately"
    NOT_REALLY = "not-really"


def format_timestamp(moment: float) -> str:
    """Return ``moment`` (epoch seconds) as a local ISO 8601 datetime."""
    return datetime.fromtimestamp(moment).isoformat(timespec="seconds")


def parse_timestamp(text: str) -> float:
    """Return epoch seconds for an ISO 8601 datetime string."""
    return datetime.fromisoformat(text).timestamp()


def to_slug(text: str) -> str:
    """Return a lowercase, dash separated version of ``text``."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower())
    return slug.strip("-")


def generate_session_id(moment: float, workout_name: str | None = None) -> str:
    """Build an id of the form ``YYYY-MM-DD-HH-MM-SS[-workout-slug]``."""
    base = datetime.fromtimestamp(moment).strftime("%Y-%m-%d-%H-%M-%S")
    if workout_name:
        slug = to_slug(workout_name)
        if slug:
            return f"{base}-{slug}"
    return base


@dataclass
class LoggedSet:
    weight: float
    reps: int
    completed: bool
    timestamp: str
    rpe: float | None = None
    actual_rest_seconds: int | None = None
    extra_rest_seconds: int | None = None
    avg_rep_duration: float | None = None

    def to_dict(self) -> dict:
        data = {
            "weight": self.weight,
            "reps": self.reps,
            "completed": self.completed,
            "timestamp": self.timestamp,
        }
        # optional fields are only written when present
        for name in (
            "rpe",
            "actual_rest_seconds",
            "extra_rest_seconds",
            "avg_rep_duration",
        ):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "LoggedSet":
        return cls(
            weight=data["weight"],
            reps=data["reps"],
            completed=data.get("completed", True),
            timestamp=data["timestamp"],
            rpe=data.get("rpe"),
            actual_rest_seconds=data.get("actual_rest_seconds"),
            extra_rest_seconds=data.get("extra_rest_seconds"),
            avg_rep_duration=data.get("avg_rep_duration"),
        )


@dataclass
class WorkoutExercise:
    """An exercise entry of a workout definition with its targets."""

    exercise_name: str
    target_sets: int = DEFAULT_SETS_PER_EXERCISE
    target_reps_min: int = DEFAULT_REPS_MIN
    target_reps_max: int = DEFAULT_REPS_MAX
    rest_seconds: int = DEFAULT_REST_DURATION
    notes: str | None = None


@dataclass
class WorkoutTemplate:
    """Read-only workout definition a session can be started from."""

    name: str
    exercises: list[WorkoutExercise] = field(default_factory=list)
    description: str | None = None


@dataclass
class SessionExercise:
    exercise_name: str
    target_sets: int = DEFAULT_SETS_PER_EXERCISE
    target_reps_min: int = DEFAULT_REPS_MIN
    target_reps_max: int = DEFAULT_REPS_MAX
    rest_seconds: int = DEFAULT_REST_DURATION
    sets: list[LoggedSet] = field(default_factory=list)
    rpe: float | None = None
    muscle_engagement: MuscleEngagement | None = None

    @classmethod
    def from_workout_exercise(cls, item: WorkoutExercise) -> "SessionExercise":
        return cls(
            exercise_name=item.exercise_name,
            target_sets=item.target_sets,
            target_reps_min=item.target_reps_min,
            target_reps_max=item.target_reps_max,
            rest_seconds=item.rest_seconds,
        )

    def to_dict(self) -> dict:
        data = {
            "exercise_name": self.exercise_name,
            "target_sets": self.target_sets,
            "target_reps_min": self.target_reps_min,
            "target_reps_max": self.target_reps_max,
            "rest_seconds": self.rest_seconds,
            "sets": [s.to_dict() for s in self.sets],
        }
        if self.rpe is not None:
            data["rpe"] = self.rpe
        if self.muscle_engagement is not None:
            data["muscle_engagement"] = self.muscle_engagement.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SessionExercise":
        engagement = data.get("muscle_engagement")
        return cls(
            exercise_name=data["exercise_name"],
            target_sets=data.get("target_sets", DEFAULT_SETS_PER_EXERCISE),
            target_reps_min=data.get("target_reps_min", DEFAULT_REPS_MIN),
            target_reps_max=data.get("target_reps_max", DEFAULT_REPS_MAX),
            rest_seconds=data.get("rest_seconds", DEFAULT_REST_DURATION),
            sets=[LoggedSet.from_dict(s) for s in data.get("sets", [])],
            rpe=data.get("rpe"),
            muscle_engagement=(
                MuscleEngagement(engagement) if engagement is not None else None
            ),
        )


@dataclass
class Session:
    id: str
    date: str
    start_time: str
    status: SessionStatus = SessionStatus.ACTIVE
    exercises: list[SessionExercise] = field(default_factory=list)
    end_time: str | None = None
    workout_ref: str | None = None
    notes: str | None = None

    def to_dict(self) -> dict:
        """Return a JSON-serialisable representation of the session."""

        return {
            "id": self.id,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "workout_ref": self.workout_ref,
            "status": self.status.value,
            "exercises": [ex.to_dict() for ex in self.exercises],
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        """Reconstruct a :class:`Session` from ``data``."""

        return cls(
            id=data["id"],
            date=data["date"],
            start_time=data["start_time"],
            end_time=data.get("end_time"),
            workout_ref=data.get("workout_ref"),
            status=SessionStatus(data.get("status", SessionStatus.ACTIVE.value)),
            exercises=[SessionExercise.from_dict(e) for e in data.get("exercises", [])],
            notes=data.get("notes"),
        )


@dataclass
class RestTimerState:
    start_time: float
    planned_seconds: int
    exercise_index: int
    extra_seconds: int = 0


@dataclass(frozen=True)
class RestPeriodData:
    """Snapshot of the last rest period, kept until a set consumes it."""

    start_time: float
    exercise_index: int
    extra_seconds: int
    planned_seconds: int
