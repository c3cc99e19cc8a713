import time

import pytest

pytest.importorskip("kivy.clock")

from kivy.clock import Clock as KivyEventClock  # noqa: E402

from workout_state.clock import KivyClock  # noqa: E402


def test_now_is_wall_clock():
    before = time.time()
    now = KivyClock().now()
    assert before <= now <= time.time()


def test_schedule_once_runs_on_tick():
    clock = KivyClock()
    calls = []
    clock.schedule_once(lambda dt: calls.append(dt), 0)
    KivyEventClock.tick()
    assert len(calls) == 1


def test_cancelled_interval_never_runs():
    clock = KivyClock()
    calls = []
    event = clock.schedule_interval(lambda dt: calls.append(dt), 0)
    event.cancel()
    KivyEventClock.tick()
    assert calls == []
