import os
import sys
from pathlib import Path

import pytest

# Kivy reads these on import; keep it quiet and headless under pytest.
os.environ.setdefault("KIVY_NO_ARGS", "1")
os.environ.setdefault("KIVY_WINDOW", "mock")
os.environ.setdefault("KIVY_UNITTEST", "1")

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tests.utils import FakeClock, MemoryStore  # noqa: E402
from workout_state import Settings, SessionStateManager  # noqa: E402
from workout_state.models import WorkoutExercise, WorkoutTemplate  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def push_day() -> WorkoutTemplate:
    """A two exercise workout with short rests."""
    return WorkoutTemplate(
        name="Push Day",
        exercises=[
            WorkoutExercise("Bench Press", target_sets=2, rest_seconds=90),
            WorkoutExercise("Push-up", target_sets=3, target_reps_min=10, target_reps_max=15, rest_seconds=60),
        ],
    )


@pytest.fixture
def manager(store, settings, clock, push_day):
    mgr = SessionStateManager(
        store,
        settings=settings,
        clock=clock,
        workouts=MemoryWorkouts([push_day]),
    )
    yield mgr
    mgr.teardown()


class MemoryWorkouts:
    def __init__(self, templates):
        self._templates = {t.name: t for t in templates}

    def get_workout(self, name):
        return self._templates.get(name)
