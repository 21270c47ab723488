"""Polling file watcher feeding the bounded change channel."""

from __future__ import annotations

import os
import queue
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..config import STATE_DIRNAME
from ..logging import get_logger

_IGNORED_DIRS = {".git", ".hg", ".svn", "node_modules", "__pycache__", STATE_DIRNAME}

ADDED = "added"
MODIFIED = "modified"
DELETED = "deleted"

Snapshot = Dict[str, Tuple[int, int]]


@dataclass(frozen=True)
class ChangeEvent:
    """A single detected filesystem change."""

    path: str
    change: str
    timestamp: float


class PollingWatcher:
    """Detects changes by comparing ``(mtime_ns, size)`` snapshots.

    Events go to ``channel`` with ``put_nowait``; when the channel is full the
    event is dropped, since a rebuild is already pending for the earlier ones.
    """

    def __init__(
        self,
        paths: Sequence[Path],
        channel: "queue.Queue[ChangeEvent]",
        *,
        interval: float = 0.5,
        ignore: Iterable[Path] = (),
    ) -> None:
        self.paths = [path.expanduser().resolve() for path in paths]
        self.channel = channel
        self.interval = interval
        self.ignore: Set[Path] = {path.expanduser().resolve() for path in ignore}
        self.dropped = 0
        self.logger = get_logger("watcher")
        self._snapshot: Snapshot = {}
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def snapshot(self) -> Snapshot:
        result: Snapshot = {}
        for base in self.paths:
            if base.is_file():
                self._record(base, result)
                continue
            for dirpath, dirnames, filenames in os.walk(base):
                dirnames[:] = sorted(name for name in dirnames if name not in _IGNORED_DIRS)
                for filename in filenames:
                    self._record(Path(dirpath) / filename, result)
        return result

    def _record(self, path: Path, result: Snapshot) -> None:
        if path in self.ignore or path.name.endswith(".tmp"):
            return
        try:
            stat_result = path.stat()
        except OSError:
            return
        result[str(path)] = (stat_result.st_mtime_ns, stat_result.st_size)

    def prime(self) -> None:
        """Record the current state without emitting events."""
        self._snapshot = self.snapshot()

    def poll(self) -> List[ChangeEvent]:
        """Compare against the previous snapshot and publish any changes."""
        current = self.snapshot()
        previous = self._snapshot
        now = time.time()
        events: List[ChangeEvent] = []
        for path, state in current.items():
            before = previous.get(path)
            if before is None:
                events.append(ChangeEvent(path=path, change=ADDED, timestamp=now))
            elif before != state:
                events.append(ChangeEvent(path=path, change=MODIFIED, timestamp=now))
        for path in previous:
            if path not in current:
                events.append(ChangeEvent(path=path, change=DELETED, timestamp=now))
        self._snapshot = current

        for event in sorted(events, key=lambda item: item.path):
            try:
                self.channel.put_nowait(event)
            except queue.Full:
                self.dropped += 1
                self.logger.debug("Change channel full; dropping %s", event.path)
        return events

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self.prime()
        self._thread = threading.Thread(target=self._run, name="svgpack-watcher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval * 4 + 1)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.poll()
            except OSError as exc:  # pragma: no cover - filesystem race
                self.logger.debug("Watcher poll failed: %s", exc)


__all__ = ["ADDED", "ChangeEvent", "DELETED", "MODIFIED", "PollingWatcher"]
