"""Tests for loading and saving the JSON settings file."""

import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from trill_transformer import DEFAULT_SETTINGS, load_settings, save_settings  # noqa: E402


def test_missing_file_returns_defaults(tmp_path):
    settings = load_settings(tmp_path / "none.json")
    assert settings == DEFAULT_SETTINGS
    settings["percentage"] = 10
    assert DEFAULT_SETTINGS["percentage"] == 50.0


def test_round_trip_and_parent_creation(tmp_path):
    path = tmp_path / "deep" / "settings.json"
    save_settings({"percentage": 25.0, "variants": ["BTrRs1"], "meter": "triple"}, path)
    assert load_settings(path) == {"percentage": 25.0, "variants": ["BTrRs1"], "meter": "triple"}


def test_unknown_keys_are_ignored(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"meter": "triple", "colour": "blue"}), encoding="utf-8")
    settings = load_settings(path)
    assert settings["meter"] == "triple"
    assert "colour" not in settings
    assert settings["percentage"] == 50.0


def test_corrupt_file_logs_and_falls_back(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    with caplog.at_level(logging.ERROR):
        assert load_settings(path) == DEFAULT_SETTINGS
    assert "Could not load settings" in caplog.text


def test_non_object_json_is_rejected(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with caplog.at_level(logging.ERROR):
        assert load_settings(path) == DEFAULT_SETTINGS
    assert "expected a JSON object" in caplog.text


def test_save_failure_is_logged(tmp_path, caplog):
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    with caplog.at_level(logging.ERROR):
        save_settings({"percentage": 1.0}, blocker / "settings.json")
    assert "Could not save settings" in caplog.text


def test_values_of_the_wrong_type_fall_back(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"percentage": None, "variants": 5, "meter": ["duple"]}), encoding="utf-8"
    )
    with caplog.at_level(logging.ERROR):
        assert load_settings(path) == DEFAULT_SETTINGS
    assert "Ignoring invalid percentage setting" in caplog.text
    assert "Ignoring invalid variants setting" in caplog.text


def test_boolean_percentage_is_rejected(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"percentage": True, "variants": "BTrRs1,CTrRs5"}), encoding="utf-8")
    settings = load_settings(path)
    assert settings["percentage"] == 50.0
    assert settings["variants"] == "BTrRs1,CTrRs5"
