import pytest

from tests.utils import FakeClock
from workout_state.events import CountdownComplete, CountdownTick, SetStarted
from workout_state.set_timer import SetTimerManager


@pytest.fixture
def timer_and_events():
    clock = FakeClock()
    events = []
    return SetTimerManager(clock, events.append), clock, events


def test_mark_start_and_duration(timer_and_events):
    timer, clock, events = timer_and_events
    assert timer.get_duration() is None
    timer.mark_start(0)
    assert events == [SetStarted(exercise_index=0)]
    assert timer.is_active()
    clock.jump(12.7)
    assert timer.get_duration() == 12
    timer.clear()
    assert not timer.is_active()
    assert timer.get_duration() is None


def test_countdown_ticks_then_starts_set(timer_and_events):
    timer, clock, events = timer_and_events
    timer.start_with_countdown(1, 3)
    assert timer.is_countdown_active()
    assert timer.get_countdown_remaining() == 3
    assert events == [CountdownTick(remaining=3, exercise_index=1)]

    clock.advance(1)
    assert timer.get_countdown_remaining() == 2
    clock.advance(2)
    assert events[-3:] == [
        CountdownTick(remaining=1, exercise_index=1),
        CountdownComplete(exercise_index=1),
        SetStarted(exercise_index=1),
    ]
    assert not timer.is_countdown_active()
    assert timer.get_countdown_remaining() is None
    assert timer.is_active()
    assert timer.get_start_time() == clock.now()


def test_zero_countdown_starts_immediately(timer_and_events):
    timer, clock, events = timer_and_events
    timer.start_with_countdown(0, 0)
    assert events == [CountdownComplete(exercise_index=0), SetStarted(exercise_index=0)]
    assert clock.pending() == 0


def test_countdown_clears_running_stopwatch(timer_and_events):
    timer, _, _ = timer_and_events
    timer.mark_start(0)
    timer.start_with_countdown(1, 5)
    assert not timer.is_active()


def test_cancel_countdown(timer_and_events):
    timer, clock, events = timer_and_events
    timer.start_with_countdown(0, 5)
    timer.cancel_countdown()
    clock.advance(10)
    assert events == [CountdownTick(remaining=5, exercise_index=0)]
    assert not timer.is_active()
    assert clock.pending() == 0


def test_destroy_stops_everything(timer_and_events):
    timer, clock, _ = timer_and_events
    timer.mark_start(0)
    timer.start_with_countdown(1, 5)
    timer.destroy()
    assert not timer.is_active()
    assert not timer.is_countdown_active()
    assert clock.pending() == 0


def test_remap_moves_stopwatch_and_countdown(timer_and_events):
    timer, clock, events = timer_and_events
    timer.mark_start(0)
    timer.remap_exercise_index({0: 2})
    assert timer.get_exercise_index() == 2

    timer.start_with_countdown(1, 2)
    timer.remap_exercise_index({1: 0})
    clock.advance(2)
    assert events[-1] == SetStarted(exercise_index=0)


def test_remap_to_removed_exercise_stops_timers(timer_and_events):
    timer, clock, _ = timer_and_events
    timer.start_with_countdown(1, 2)
    timer.remap_exercise_index({1: None})
    assert not timer.is_countdown_active()
    assert clock.pending() == 0

    timer.mark_start(1)
    timer.remap_exercise_index({1: None})
    assert not timer.is_active()
