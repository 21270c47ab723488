"""Live-preview dev mode."""

from .orchestrator import BuildRunner, DevOrchestrator, RebuildSession, Subscriber
from .watcher import ChangeEvent, PollingWatcher

__all__ = [
    "BuildRunner",
    "ChangeEvent",
    "DevOrchestrator",
    "PollingWatcher",
    "RebuildSession",
    "Subscriber",
]
