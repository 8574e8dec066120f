from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from .focus_timer import SessionRecord
from .settings_store import data_dir, write_json_atomic

logger = logging.getLogger(__name__)

SESSIONS_FILENAME = ".focusledger_sessions.json"


class LocalSessionStore:
    """Best-effort local cache of completed sessions.

    Register an instance with ``FocusTimer.on_session_complete``; each call
    appends the record's dict form to a JSON array on disk.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or os.path.join(data_dir(), SESSIONS_FILENAME)

    def __call__(self, record: SessionRecord) -> None:
        self.append(record)

    def append(self, record: SessionRecord) -> None:
        sessions = self.load_all()
        sessions.append(record.to_dict())
        write_json_atomic(self.path, sessions)
        logger.info("Session saved locally (%d cached)", len(sessions))

    def load_all(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError):
            logger.warning("Session cache %s is unreadable, starting a new one", self.path, exc_info=True)
            return []
        if not isinstance(raw, list):
            logger.warning("Session cache %s is not a list, starting a new one", self.path)
            return []
        return [s for s in raw if isinstance(s, dict)]

    def clear(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)
