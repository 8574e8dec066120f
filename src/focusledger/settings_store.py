"""
JSON persistence for timer settings.

The engine reads settings once through ``SettingsStore.load`` at construction
and hands every accepted change to ``SettingsStore.save``. Writes are atomic:
write to a temp file, then ``os.replace`` it over the real one.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

from .focus_timer import TimerSettings

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = ".focusledger_settings.json"


def data_dir() -> str:
    return os.environ.get("FOCUSLEDGER_HOME") or os.path.expanduser("~")


def write_json_atomic(path: str, payload: Any) -> None:
    tmp = path + ".tmp"
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


class SettingsStore:
    """Loads and saves TimerSettings as a small JSON document."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or os.path.join(data_dir(), SETTINGS_FILENAME)

    def load(self) -> Optional[TimerSettings]:
        """Return saved settings, or None when nothing usable is on disk."""
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValueError("settings file does not hold an object")
            return TimerSettings.from_dict(raw)
        except (OSError, ValueError):
            # ValidationError is a ValueError too
            logger.warning("Ignoring unreadable settings file %s", self.path, exc_info=True)
            return None

    def save(self, settings: TimerSettings) -> None:
        write_json_atomic(self.path, settings.to_dict())
        logger.debug("Saved timer settings to %s", self.path)
