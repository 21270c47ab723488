"""Content-addressed cache for bundle and asset outputs."""

from __future__ import annotations

import json
import os
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, Iterable, Optional

from ..logging import get_logger

_CACHE_VERSION = 1


class BuildCache:
    """Stores pipeline outputs keyed by a fingerprint of their hashed inputs.

    Entries are immutable once stored: a key is derived from every input that
    influences the value, so a second store under the same key carries the same
    payload and is ignored. The map is guarded by a lock so builds may read it
    from worker threads while a previous build's results are being persisted.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._entries: Dict[str, Dict[str, object]] = {}
        self._lock = threading.Lock()
        self._dirty = False
        self.hits = 0
        self.misses = 0
        self.logger = get_logger("cache")
        if self._path is not None:
            self._load(self._path)

    def get(self, key: str) -> Optional[Dict[str, object]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            payload = entry.get("payload")
            return dict(payload) if isinstance(payload, dict) else None

    def store(self, key: str, payload: Dict[str, object]) -> None:
        with self._lock:
            if key in self._entries:
                return
            self._entries[key] = {
                "payload": dict(payload),
                "stored_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            }
            self._dirty = True

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def prune(self, keys_to_keep: Iterable[str]) -> None:
        keep = set(keys_to_keep)
        with self._lock:
            removed = [key for key in self._entries if key not in keep]
            for key in removed:
                self._entries.pop(key, None)
            if removed:
                self._dirty = True

    def persist(self) -> None:
        with self._lock:
            if not self._dirty or self._path is None:
                return
            payload = {"version": _CACHE_VERSION, "entries": self._entries}
            text = json.dumps(payload, indent=2, sort_keys=True)
            self._dirty = False
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, self._path)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._dirty = True

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.debug("Ignoring unreadable build cache %s: %s", path, exc)
            return
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        self._entries = {
            key: raw
            for key, raw in entries.items()
            if isinstance(key, str) and isinstance(raw, dict) and isinstance(raw.get("payload"), dict)
        }
        self._dirty = False


__all__ = ["BuildCache"]
