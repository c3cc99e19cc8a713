import json

import pytest

from workout_state.errors import ValidationError
from workout_state.settings import Settings, load_settings, save_settings


def test_defaults():
    settings = Settings()
    assert settings.default_rest_seconds == 120
    assert settings.auto_start_rest_timer is True
    assert settings.weight_unit == "kg"
    assert settings.countdown_seconds == 5


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        Settings(default_rest_seconds=0)
    with pytest.raises(ValidationError):
        Settings(weight_unit="stone")
    with pytest.raises(ValidationError):
        Settings(countdown_seconds=-1)


def test_replace_returns_new_snapshot():
    settings = Settings()
    changed = settings.replace(weight_unit="lbs")
    assert changed.weight_unit == "lbs"
    assert settings.weight_unit == "kg"


def test_load_creates_defaults(tmp_path):
    path = tmp_path / "settings.json"
    assert load_settings(path) == Settings()
    data = json.loads(path.read_text())
    assert {"key": "weight_unit", "value": "kg", "type": "choice"} in data


def test_save_and_load(tmp_path):
    path = tmp_path / "settings.json"
    save_settings(Settings(default_rest_seconds=90, auto_start_rest_timer=False), path)
    loaded = load_settings(path)
    assert loaded.default_rest_seconds == 90
    assert loaded.auto_start_rest_timer is False


def test_unknown_keys_ignored(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps([
        {"key": "countdown_seconds", "value": 3, "type": "int"},
        {"key": "theme", "value": "dark", "type": "str"},
    ]))
    assert load_settings(path).countdown_seconds == 3


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json")
    assert load_settings(path) == Settings()
    assert json.loads(path.read_text())
