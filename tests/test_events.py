import logging

import pytest

from workout_state.events import EVENT_TYPES, EventBus, SetLogged, TimerCancelled, TimerTick


def test_event_names_are_closed_set():
    assert set(EVENT_TYPES) == {
        "timer.started",
        "timer.tick",
        "timer.extended",
        "timer.cancelled",
        "timer.completed",
        "countdown.tick",
        "countdown.complete",
        "set.started",
        "set-logged",
        "duration.tick",
    }


def test_publish_reaches_only_matching_handlers():
    bus = EventBus()
    ticks, logged = [], []
    bus.on("timer.tick", ticks.append)
    bus.on("set-logged", logged.append)
    bus.publish(TimerTick(remaining=5))
    assert ticks == [TimerTick(remaining=5)]
    assert logged == []


def test_unknown_event_name_rejected():
    with pytest.raises(ValueError):
        EventBus().on("timer.exploded", print)


def test_unsubscribe_stops_delivery():
    bus = EventBus()
    seen = []
    off = bus.on("timer.cancelled", seen.append)
    off()
    off()
    bus.publish(TimerCancelled())
    assert seen == []


def test_failing_handler_does_not_block_others(caplog):
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.on("set-logged", broken)
    bus.on("set-logged", seen.append)
    with caplog.at_level(logging.ERROR):
        bus.publish(SetLogged(exercise_index=0, set_index=0))
    assert len(seen) == 1
    assert "set-logged" in caplog.text


def test_handler_may_unsubscribe_during_publish():
    bus = EventBus()
    seen = []
    offs = []

    def once(event):
        seen.append(event)
        offs[0]()

    offs.append(bus.on("timer.tick", once))
    bus.publish(TimerTick(remaining=2))
    bus.publish(TimerTick(remaining=1))
    assert seen == [TimerTick(remaining=2)]
