from __future__ import annotations

"""Settings snapshot handed to the session engine.

On disk the settings are stored as a list of dictionaries to preserve order.
Each dictionary contains ``key``, ``value`` and ``type`` entries.  In memory
they are an immutable :class:`Settings`; changing a value means building a new
snapshot and passing it to ``SessionStateManager.update_settings``.
"""

import dataclasses
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from workout_state import DEFAULT_COUNTDOWN_SECONDS, DEFAULT_REST_DURATION
from workout_state.errors import ValidationError

WEIGHT_UNITS = ("kg", "lbs")

# Widget type recorded next to each value, used by settings screens.
_SETTING_TYPES = {
    "default_rest_seconds": "int",
    "auto_start_rest_timer": "bool",
    "weight_unit": "choice",
    "countdown_seconds": "int",
}


@dataclass(frozen=True)
class Settings:
    default_rest_seconds: int = DEFAULT_REST_DURATION
    auto_start_rest_timer: bool = True
    weight_unit: str = "kg"
    countdown_seconds: int = DEFAULT_COUNTDOWN_SECONDS

    def __post_init__(self):
        if self.default_rest_seconds <= 0:
            raise ValidationError("default_rest_seconds must be greater than 0")
        if self.countdown_seconds < 0:
            raise ValidationError("countdown_seconds cannot be negative")
        if self.weight_unit not in WEIGHT_UNITS:
            raise ValidationError(f"Unknown weight unit '{self.weight_unit}'")

    def replace(self, **changes: Any) -> "Settings":
        """Return a copy of the snapshot with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    def to_items(self) -> List[Dict[str, Any]]:
        return [
            {"key": f.name, "value": getattr(self, f.name), "type": _SETTING_TYPES[f.name]}
            for f in dataclasses.fields(self)
        ]

    @classmethod
    def from_items(cls, items: List[Dict[str, Any]]) -> "Settings":
        """Build a snapshot from stored items, ignoring unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        values = {
            item["key"]: item.get("value")
            for item in items
            if isinstance(item, dict) and item.get("key") in known
        }
        return cls(**values)


def load_settings(path: Path) -> Settings:
    """Load settings from ``path`` or create the file with defaults."""
    path = Path(path)
    if path.exists():
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
            if isinstance(data, list):
                return Settings.from_items(data)
        except (OSError, ValueError, TypeError):
            logging.exception("Could not read settings from %s", path)
    settings = Settings()
    save_settings(settings, path)
    return settings


def save_settings(settings: Settings, path: Path) -> None:
    """Persist ``settings`` to ``path``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(settings.to_items(), fh)
