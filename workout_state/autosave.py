"""Debounced persistence of the active session."""

from __future__ import annotations

import logging
from typing import Callable

from workout_state import DEFAULT_AUTOSAVE_DELAY
from workout_state.clock import Clock


class AutosaveScheduler:
    """Collapse bursts of save requests into a single trailing write."""

    def __init__(self, clock: Clock, delay: float = DEFAULT_AUTOSAVE_DELAY):
        self._clock = clock
        self.delay = delay
        self._event = None

    def schedule(self, save_fn: Callable[[], None]) -> None:
        """Run ``save_fn`` once no new request arrived for :attr:`delay` seconds.

        Errors raised by ``save_fn`` are logged and dropped; the next
        mutation schedules another attempt.
        """
        self.cancel()

        def do_save(dt):
            self._event = None
            try:
                save_fn()
            except Exception:
                logging.exception("Autosave failed")

        self._event = self._clock.schedule_once(do_save, self.delay)

    def flush(self, save_fn: Callable[[], None]) -> None:
        """Drop any pending write and run ``save_fn`` now.

        Unlike :meth:`schedule`, errors propagate to the caller.
        """
        self.cancel()
        try:
            save_fn()
        except Exception:
            logging.exception("Flush save failed")
            raise

    def cancel(self) -> None:
        if self._event is not None:
            self._event.cancel()
            self._event = None

    def is_pending(self) -> bool:
        return self._event is not None
