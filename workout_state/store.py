"""Persistence collaborators of the session engine.

:class:`SessionStore` is what the engine needs from storage.
:class:`RecoveryFileStore` implements it with JSON files: the active session
is mirrored into two recovery files so a torn write to one still leaves a
readable copy, and every finished session is archived as its own file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from workout_state.errors import PersistenceError
from workout_state.models import Session, WorkoutTemplate


class SessionStore(Protocol):
    def load_active_session(self) -> Session | None:
        ...

    def save_active_session(self, session: Session) -> None:
        ...

    def delete_active_session(self) -> None:
        ...

    def archive_completed_session(self, session: Session) -> None:
        ...


class WorkoutProvider(Protocol):
    def get_workout(self, name: str) -> WorkoutTemplate | None:
        ...


class RecoveryFileStore:
    """Store the active session in ``<base>_1.json`` and ``<base>_2.json``."""

    def __init__(self, recovery_base: Path, archive_dir: Path):
        self.recovery_base = Path(recovery_base)
        self.archive_dir = Path(archive_dir)

    @property
    def recovery_files(self) -> tuple[Path, Path]:
        base = self.recovery_base
        return (
            base.with_name(base.name + "_1.json"),
            base.with_name(base.name + "_2.json"),
        )

    def archive_path(self, session: Session) -> Path:
        return self.archive_dir / f"{session.id}.json"

    def load_active_session(self) -> Session | None:
        """Return the session from the first readable recovery file."""

        errors = []
        for path in self.recovery_files:
            if not path.exists():
                continue
            try:
                text = path.read_text(encoding="utf-8").strip()
                if not text:
                    continue
                return Session.from_dict(json.loads(text))
            except (OSError, ValueError, KeyError, TypeError) as exc:
                errors.append(f"{path.name}: {exc}")
        if errors:
            raise PersistenceError(
                "No readable recovery file: " + "; ".join(errors)
            )
        return None

    def save_active_session(self, session: Session) -> None:
        payload = json.dumps(session.to_dict())
        try:
            self.recovery_base.parent.mkdir(parents=True, exist_ok=True)
            for path in self.recovery_files:
                path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Could not save active session: {exc}") from exc

    def delete_active_session(self) -> None:
        """Remove any existing recovery files."""

        for path in self.recovery_files:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as exc:
                raise PersistenceError(f"Could not delete {path}: {exc}") from exc

    def archive_completed_session(self, session: Session) -> None:
        path = self.archive_path(session)
        try:
            self.archive_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(session.to_dict(), indent=2), encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Could not archive session: {exc}") from exc

    def load_archived_session(self, session_id: str) -> Session | None:
        path = self.archive_dir / f"{session_id}.json"
        if not path.exists():
            return None
        try:
            return Session.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise PersistenceError(f"Could not read {path}: {exc}") from exc
