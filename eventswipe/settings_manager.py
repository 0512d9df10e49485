"""
Application settings management for user preferences.

Tracks the calendar backend (Apple Calendar, ICS file or Google Calendar)
and the ICS export directory. Settings are persisted to the user's
Application Support directory so the choice survives across app restarts.
Events themselves are never stored.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Literal, TypedDict

from eventswipe.logging_helper import Log

CalendarBackend = Literal["apple", "ics", "google"]
CALENDAR_BACKENDS = ("apple", "ics", "google")


class SettingsSchema(TypedDict, total=False):
    calendar_backend: CalendarBackend
    ics_export_dir: str


DEFAULT_SETTINGS: SettingsSchema = {
    "calendar_backend": "apple",
    "ics_export_dir": str(Path.home() / "Downloads"),
}


def settings_dir() -> Path:
    override = os.environ.get("EVENTSWIPE_SETTINGS_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / "Library" / "Application Support" / "EventSwipe"


def settings_file() -> Path:
    return settings_dir() / "settings.json"


def _ensure_settings_dir() -> None:
    try:
        settings_dir().mkdir(parents=True, exist_ok=True)
    except Exception as err:
        Log.warn(f"Unable to create settings directory {settings_dir()}: {err}")


def load_settings() -> SettingsSchema:
    """
    Load settings from disk, falling back to defaults if anything fails.
    """
    path = settings_file()
    if not path.exists():
        Log.info(f"Settings file not found, using defaults: {path}")
        return DEFAULT_SETTINGS.copy()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Settings data is not a JSON object")
    except Exception as err:
        Log.warn(f"Failed to read settings file ({path}): {err}")
        return DEFAULT_SETTINGS.copy()

    merged: SettingsSchema = DEFAULT_SETTINGS.copy()
    # Merge only known keys
    for key in DEFAULT_SETTINGS:
        if key in data:
            merged[key] = data[key]  # type: ignore[literal-required]
    return merged


def save_settings(settings: SettingsSchema) -> None:
    """
    Persist settings to disk.
    """
    _ensure_settings_dir()
    path = settings_file()
    try:
        path.write_text(
            json.dumps(settings, indent=2, sort_keys=True),
            encoding="utf-8",
        )
    except Exception as err:
        Log.warn(f"Failed to write settings file ({path}): {err}")


def get_calendar_backend() -> CalendarBackend:
    """Stored backend, overridden by EVENTSWIPE_CALENDAR_BACKEND when set."""
    env_value = os.environ.get("EVENTSWIPE_CALENDAR_BACKEND", "").strip().lower()
    if env_value:
        if env_value in CALENDAR_BACKENDS:
            return env_value  # type: ignore[return-value]
        Log.warn(f"Ignoring invalid EVENTSWIPE_CALENDAR_BACKEND value '{env_value}'")

    settings = load_settings()
    backend = settings.get("calendar_backend", DEFAULT_SETTINGS["calendar_backend"])
    if backend not in CALENDAR_BACKENDS:
        Log.warn(f"Invalid calendar_backend value '{backend}', defaulting to apple")
        backend = "apple"
    return backend


def set_calendar_backend(value: CalendarBackend) -> None:
    if value not in CALENDAR_BACKENDS:
        raise ValueError(f"Invalid calendar backend: {value}")
    settings = load_settings()
    settings["calendar_backend"] = value
    save_settings(settings)
    Log.info(f"Saved calendar backend setting: {value}")


def get_ics_export_dir() -> Path:
    settings = load_settings()
    value = settings.get("ics_export_dir") or DEFAULT_SETTINGS["ics_export_dir"]
    return Path(value).expanduser()
