"""File-based key-value store and the scheduled reminder repository.

Created: 2026-03-02

Storage layout:
~/.subnotify/store/
    scheduled_reminders.json    # Full ScheduledReminder list
    onesignal_rest_api_key.json # REST key saved at runtime
    push_subscriber_id.json     # OneSignal subscription id of this device

Design notes:
- One file per key, value is text (the repository stores JSON in it)
- Atomic writes using temp file + rename
- Files are chmod 0600 (owner-only read/write)
- The reminder list is always read and written whole
"""

from __future__ import annotations

import json
import logging
import os
import re
import stat
from pathlib import Path
from typing import Any, Protocol

from subnotify.config import get_config_dir
from subnotify.reminders.models import ScheduledReminder

logger = logging.getLogger(__name__)

REMINDERS_KEY = "scheduled_reminders"

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStoreProtocol(Protocol):
    """Device-local text store. Implement this for other backends."""

    def get(self, key: str) -> str | None:
        """Return the stored text, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store text under key, replacing any previous value."""
        ...

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if it existed."""
        ...


class FileKeyValueStore:
    """Key-value store at ~/.subnotify/store/{key}.json."""

    def __init__(self, base_path: Path | None = None):
        if base_path is None:
            base_path = get_config_dir() / "store"

        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.base_path / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Error reading {path}: {e}")
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        temp_path = path.with_suffix(".tmp")
        try:
            temp_path.write_text(value, encoding="utf-8")
            os.chmod(temp_path, stat.S_IRUSR | stat.S_IWUSR)
            temp_path.replace(path)
        except OSError as e:
            logger.error(f"Error saving {path}: {e}")
            if temp_path.exists():
                temp_path.unlink()
            raise

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if path.exists():
            path.unlink()
            return True
        return False


class ReminderRepository:
    """Reads and writes the whole ScheduledReminder list under one key."""

    def __init__(self, store: KeyValueStoreProtocol, key: str = REMINDERS_KEY):
        self.store = store
        self.key = key

    def load(self) -> list[ScheduledReminder]:
        """Load all reminders, in stored order. Unreadable data loads as empty."""
        raw = self.store.get(self.key)
        if not raw:
            return []

        try:
            data: Any = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Stored reminder list is not valid JSON: {e}")
            return []

        if not isinstance(data, list):
            logger.error("Stored reminder list is not a JSON array, ignoring it")
            return []

        return [ScheduledReminder.from_dict(item) for item in data if isinstance(item, dict)]

    def save(self, reminders: list[ScheduledReminder]) -> None:
        """Replace the stored list."""
        data = [r.to_dict() for r in reminders]
        self.store.set(self.key, json.dumps(data, indent=2, ensure_ascii=False))
        logger.debug(
            "Saved %d reminder(s) (%d pending)",
            len(reminders),
            sum(1 for r in reminders if not r.sent),
        )
