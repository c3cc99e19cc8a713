"""Helpers shared by the test-suite."""

from __future__ import annotations

import itertools

from workout_state.errors import PersistenceError
from workout_state.models import Session

# 2023-11-14 22:13:20 UTC
START = 1_700_000_000.0


class FakeEvent:
    _ids = itertools.count()

    def __init__(self, callback, due: float, interval: float | None):
        self.callback = callback
        self.due = due
        self.interval = interval
        self.cancelled = False
        self.seq = next(self._ids)

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock:
    """Clock whose time only moves through :meth:`advance` and :meth:`jump`."""

    def __init__(self, start: float = START):
        self.current = start
        self.events: list[FakeEvent] = []

    def now(self) -> float:
        return self.current

    def schedule_once(self, callback, timeout: float = 0) -> FakeEvent:
        event = FakeEvent(callback, self.current + timeout, None)
        self.events.append(event)
        return event

    def schedule_interval(self, callback, interval: float) -> FakeEvent:
        event = FakeEvent(callback, self.current + interval, interval)
        self.events.append(event)
        return event

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due callbacks in order."""
        target = self.current + seconds
        while True:
            due = [e for e in self.events if not e.cancelled and e.due <= target]
            if not due:
                break
            event = min(due, key=lambda e: (e.due, e.seq))
            dt = max(0.0, event.due - self.current)
            self.current = max(self.current, event.due)
            if event.interval is None:
                event.cancelled = True
            else:
                # overdue intervals fire once, then resume from now
                event.due = self.current + event.interval
            event.callback(dt)
        self.current = target
        self.events = [e for e in self.events if not e.cancelled]

    def jump(self, seconds: float) -> None:
        """Move wall time without running callbacks, like a suspended app."""
        self.current += seconds

    def pending(self) -> int:
        return sum(1 for e in self.events if not e.cancelled)


class MemoryStore:
    """In-memory session store that records what was written."""

    def __init__(self, active: Session | None = None):
        self.active = active.to_dict() if active is not None else None
        self.archived: list[dict] = []
        self.saves = 0
        self.deletes = 0
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise PersistenceError("store unavailable")

    def load_active_session(self) -> Session | None:
        self._check()
        if self.active is None:
            return None
        return Session.from_dict(self.active)

    def save_active_session(self, session: Session) -> None:
        self._check()
        self.saves += 1
        self.active = session.to_dict()

    def delete_active_session(self) -> None:
        self._check()
        self.deletes += 1
        self.active = None

    def archive_completed_session(self, session: Session) -> None:
        self._check()
        self.archived.append(session.to_dict())
