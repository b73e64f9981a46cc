"""
Durable browser-local key/value storage for the signal collector.

Mirrors the localStorage contract (string keys to string values) on top of a
JSON file, so dedup state survives across page loads and sessions.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterable, Optional, Set

from src.utils.constants import CollectorConstants
from src.utils.logger import logger


class KeyStore:
    """String key/value store persisted to a JSON file."""

    def __init__(self, path: Optional[str] = None):
        """
        Args:
            path: JSON file backing the store; None keeps it in memory only
        """
        self.path = Path(path) if path else None
        self._items: Dict[str, str] = self._load()
        self._migrate_legacy_keys()

    def _load(self) -> Dict[str, str]:
        if not self.path or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable key store {self.path}, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _persist(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so a crash never leaves a half-written file
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(self._items, f, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def _migrate_legacy_keys(self) -> None:
        """One-time rename of the pre-dislike ``trackedClicks`` key."""
        legacy = self.get_item(CollectorConstants.LEGACY_SENT_KEY)
        if legacy and self.get_item(CollectorConstants.SENT_POSITIVE_KEY) is None:
            self.set_item(CollectorConstants.SENT_POSITIVE_KEY, legacy)
            self.remove_item(CollectorConstants.LEGACY_SENT_KEY)
            logger.info("Migrated legacy trackedClicks key to trackedSignals")

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._persist()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._persist()

    def load_set(self, key: str) -> Set[str]:
        """Read a JSON array stored under key as a set of strings."""
        raw = self.get_item(key)
        if not raw:
            return set()
        try:
            values = json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding malformed value under {key}")
            return set()
        if not isinstance(values, list):
            return set()
        return {str(v) for v in values}

    def save_set(self, key: str, values: Iterable[str]) -> None:
        self.set_item(key, json.dumps(sorted(values)))
