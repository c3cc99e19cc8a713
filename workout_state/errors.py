"""Exception types raised by the session engine."""


class WorkoutStateError(Exception):
    """Base class for all session engine errors."""


class ValidationError(WorkoutStateError, ValueError):
    """A command received an argument it cannot accept.

    Raised for non-positive weight or reps, out-of-range exercise or set
    indices and similar caller mistakes.  State is left untouched.
    """


class InvalidStateError(WorkoutStateError):
    """A command is not allowed in the current session state."""


class PersistenceError(WorkoutStateError):
    """The session store failed to read or write."""
