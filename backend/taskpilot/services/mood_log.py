"""Append-only JSON file of mood check-ins."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class MoodLog:
    """Stores mood records as one pretty-printed JSON array on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = Lock()

    def append(self, *, note: str, mood: str, motivation: int, suggestion: str) -> bool:
        """Append one record; returns False instead of raising when the file cannot be written."""
        record = {
            "note": note,
            "mood": mood,
            "motivation": motivation,
            "suggestion": suggestion,
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        with self._lock:
            records = self._read()
            records.append(record)
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(json.dumps(records, indent=2), encoding="utf-8")
            except OSError as exc:
                logger.error("Failed to save mood record to %s: %s", self.path, exc)
                return False
        logger.debug("Saved mood record #%s to %s", len(records), self.path)
        return True

    def _read(self) -> List[Dict[str, Any]]:
        try:
            current = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as exc:
            logger.warning("Mood log %s unreadable (%s); starting a new one", self.path, exc)
            return []
        if not isinstance(current, list):
            logger.warning("Mood log %s is not a JSON array; starting a new one", self.path)
            return []
        return current
