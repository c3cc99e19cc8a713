"""Fine-grained events published by the session engine.

Each event is a small frozen dataclass whose ``name`` class attribute is the
topic handlers subscribe to.  The set of topics is closed: :data:`EVENT_TYPES`
lists every one of them and :meth:`EventBus.on` rejects anything else.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, ClassVar, Union


@dataclass(frozen=True)
class TimerStarted:
    name: ClassVar[str] = "timer.started"
    exercise_index: int
    duration: int


@dataclass(frozen=True)
class TimerTick:
    name: ClassVar[str] = "timer.tick"
    remaining: int


@dataclass(frozen=True)
class TimerExtended:
    name: ClassVar[str] = "timer.extended"
    additional_seconds: int


@dataclass(frozen=True)
class TimerCancelled:
    name: ClassVar[str] = "timer.cancelled"


@dataclass(frozen=True)
class TimerCompleted:
    name: ClassVar[str] = "timer.completed"
    exercise_index: int


@dataclass(frozen=True)
class CountdownTick:
    name: ClassVar[str] = "countdown.tick"
    remaining: int
    exercise_index: int


@dataclass(frozen=True)
class CountdownComplete:
    name: ClassVar[str] = "countdown.complete"
    exercise_index: int


@dataclass(frozen=True)
class SetStarted:
    name: ClassVar[str] = "set.started"
    exercise_index: int


@dataclass(frozen=True)
class SetLogged:
    name: ClassVar[str] = "set-logged"
    exercise_index: int
    set_index: int


@dataclass(frozen=True)
class DurationTick:
    name: ClassVar[str] = "duration.tick"
    elapsed: int


SessionEvent = Union[
    TimerStarted,
    TimerTick,
    TimerExtended,
    TimerCancelled,
    TimerCompleted,
    CountdownTick,
    CountdownComplete,
    SetStarted,
    SetLogged,
    DurationTick,
]

EVENT_TYPES: dict[str, type] = {
    cls.name: cls
    for cls in (
        TimerStarted,
        TimerTick,
        TimerExtended,
        TimerCancelled,
        TimerCompleted,
        CountdownTick,
        CountdownComplete,
        SetStarted,
        SetLogged,
        DurationTick,
    )
}

Handler = Callable[[SessionEvent], None]


class EventBus:
    """Topic based publish/subscribe hub."""

    def __init__(self):
        self._handlers: dict[str, list[Handler]] = {name: [] for name in EVENT_TYPES}

    def on(self, event_name: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``event_name`` and return an unsubscribe."""
        if event_name not in self._handlers:
            raise ValueError(f"Unknown event '{event_name}'")
        self._handlers[event_name].append(handler)

        def unsubscribe() -> None:
            try:
                self._handlers[event_name].remove(handler)
            except ValueError:
                pass

        return unsubscribe

    def publish(self, event: SessionEvent) -> None:
        # copy so handlers may unsubscribe while being notified
        for handler in list(self._handlers[event.name]):
            try:
                handler(event)
            except Exception:
                logging.exception("Handler for %s failed", event.name)

    def clear(self) -> None:
        for handlers in self._handlers.values():
            handlers.clear()
