"""Dev-mode rebuild orchestration: serialized builds, debounced changes, push updates."""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Set

from ..config import BuildConfiguration
from ..errors import INTERNAL_ERROR, SvgpackError
from ..logging import get_logger, log_exception
from ..models import SEVERITY_ERROR, BuildResult, ValidationIssue
from ..pipeline import Pipeline
from . import protocol
from .watcher import ChangeEvent, PollingWatcher


class BuildRunner(Protocol):
    def run(self, *, sequence: int = 0) -> BuildResult:
        ...


class Subscriber(Protocol):
    """A connected preview client.

    ``send`` must not block for long; raising from it removes the subscriber.
    """

    def send(self, message: Mapping[str, Any]) -> None:
        ...


@dataclass
class _Outgoing:
    message: Dict[str, Any]
    sequence: Optional[int] = None
    target: Optional[Subscriber] = None


@dataclass
class RebuildSession:
    """Build numbering and connected subscribers for one dev-server run."""

    sequence: int = 0
    reason: str = ""
    subscribers: Set[Subscriber] = field(default_factory=set)

    def advance(self, reason: str) -> int:
        self.sequence += 1
        self.reason = reason
        return self.sequence


_STOP = object()


class DevOrchestrator:
    """Coordinates rebuilds and live-preview notifications.

    Three daemon threads cooperate:

    * the build worker runs at most one build at a time; requests that arrive
      while a build is running collapse into a single follow-up build,
    * the debouncer drains the bounded change channel and turns a burst of
      events into one build request once the channel has been quiet for
      ``debounce`` seconds,
    * the broadcaster delivers messages to subscribers so a slow client never
      delays a build.
    """

    def __init__(
        self,
        runner: BuildRunner,
        *,
        debounce: float = 0.2,
        channel_size: int = 256,
        watcher_factory: Optional[Callable[["queue.Queue[ChangeEvent]"], PollingWatcher]] = None,
    ) -> None:
        self.runner = runner
        self.debounce = debounce
        self.changes: "queue.Queue[ChangeEvent]" = queue.Queue(maxsize=channel_size)
        self.logger = get_logger("dev")
        self.watcher = watcher_factory(self.changes) if watcher_factory else None
        self.build_count = 0
        self.dropped_changes = 0

        self._cond = threading.Condition()
        self._requested = False
        self._pending_reason = ""
        self._building = False
        self._stopped = False
        self._last_result: Optional[BuildResult] = None
        self._last_success: Optional[BuildResult] = None
        self._last_build_timestamp: Optional[float] = None

        self.session = RebuildSession()
        self._subscribers_lock = threading.Lock()
        self._outbox: "queue.Queue[Any]" = queue.Queue()
        self._last_broadcast_sequence = 0
        self._threads: List[threading.Thread] = []

    @classmethod
    def from_config(cls, config: BuildConfiguration) -> "DevOrchestrator":
        pipeline = Pipeline(config)
        watched = [config.source_root]
        if config.template_path is not None:
            watched.append(config.template_path)
        ignored = [config.output_path]
        if config.cache_path is not None:
            ignored.append(config.cache_path)

        def _watcher(channel: "queue.Queue[ChangeEvent]") -> PollingWatcher:
            return PollingWatcher(
                watched, channel, interval=config.dev.poll_interval, ignore=ignored
            )

        return cls(
            pipeline,
            debounce=config.dev.debounce,
            channel_size=config.dev.channel_size,
            watcher_factory=_watcher,
        )

    # lifecycle -----------------------------------------------------------

    def start(self, *, initial_build: bool = True) -> None:
        if self._threads:
            return
        with self._cond:
            self._stopped = False
        for target, name in (
            (self._worker_loop, "svgpack-build-worker"),
            (self._debounce_loop, "svgpack-debounce"),
            (self._broadcast_loop, "svgpack-broadcast"),
        ):
            thread = threading.Thread(target=target, name=name, daemon=True)
            thread.start()
            self._threads.append(thread)
        if self.watcher is not None:
            self.watcher.start()
        if initial_build:
            self.request_build("startup")
        self.logger.info("Dev orchestrator started")

    def stop(self, timeout: float = 5.0) -> None:
        if self.watcher is not None:
            self.watcher.stop()
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
        self._outbox.put(_STOP)
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []
        self.logger.info("Dev orchestrator stopped")

    # build requests ------------------------------------------------------

    def request_build(self, reason: str = "manual") -> None:
        """Ask for a rebuild; coalesces with any request already pending."""
        with self._cond:
            if self._stopped:
                return
            if self._requested:
                self.logger.debug("Coalescing build request (%s)", reason)
            self._requested = True
            self._pending_reason = reason
            self._cond.notify_all()

    def notify_change(self, event: ChangeEvent) -> bool:
        """Feed one change into the bounded channel; returns False when dropped."""
        try:
            self.changes.put_nowait(event)
        except queue.Full:
            self.dropped_changes += 1
            self.logger.debug("Change channel full; dropping %s", event.path)
            return False
        return True

    def _worker_loop(self) -> None:
        while True:
            with self._cond:
                while not self._requested and not self._stopped:
                    self._cond.wait()
                if self._stopped:
                    return
                self._requested = False
                reason = self._pending_reason
                self._building = True
                sequence = self.session.advance(reason)
            try:
                self._run_build(sequence, reason)
            finally:
                with self._cond:
                    self._building = False
                    self._cond.notify_all()

    def _run_build(self, sequence: int, reason: str) -> BuildResult:
        self.logger.info("Starting build %d (%s)", sequence, reason)
        started = time.perf_counter()
        try:
            result = self.runner.run(sequence=sequence)
        except SvgpackError as exc:
            log_exception(self.logger, f"Build {sequence} failed", exc)
            result = self._failed_result(exc.to_issue(), sequence, started)
        except Exception as exc:
            log_exception(self.logger, f"Build {sequence} crashed", exc)
            issue = ValidationIssue(
                severity=SEVERITY_ERROR,
                code=INTERNAL_ERROR,
                message=f"{type(exc).__name__}: {exc}",
            )
            result = self._failed_result(issue, sequence, started)
        self._record(result)
        return result

    @staticmethod
    def _failed_result(issue: ValidationIssue, sequence: int, started: float) -> BuildResult:
        return BuildResult(
            document="",
            issues=(issue,),
            size=0,
            duration=time.perf_counter() - started,
            success=False,
            sequence=sequence,
            finished_at=time.time(),
        )

    def _record(self, result: BuildResult) -> None:
        with self._cond:
            self.build_count += 1
            self._last_result = result
            self._last_build_timestamp = result.finished_at
            if result.success:
                self._last_success = result
        if result.success:
            self._enqueue(protocol.build_success_message(result), sequence=result.sequence)
            self._enqueue(protocol.reload_message(result.sequence), sequence=result.sequence)
        else:
            self._enqueue(
                protocol.build_error_message(result.sequence, list(result.issues)),
                sequence=result.sequence,
            )

    # change channel ------------------------------------------------------

    def _debounce_loop(self) -> None:
        while True:
            with self._cond:
                if self._stopped:
                    return
            try:
                first = self.changes.get(timeout=0.1)
            except queue.Empty:
                continue
            consumed = 1
            paths = {first.path}
            deadline = time.monotonic() + self.debounce
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                try:
                    event = self.changes.get(timeout=remaining)
                except queue.Empty:
                    break
                consumed += 1
                paths.add(event.path)
                deadline = time.monotonic() + self.debounce
            self.request_build(f"{len(paths)} changed file(s)")
            for _ in range(consumed):
                self.changes.task_done()

    # subscribers ---------------------------------------------------------

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._subscribers_lock:
            self.session.subscribers.add(subscriber)
        self.logger.debug("Subscriber connected (%d total)", self.subscriber_count)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._subscribers_lock:
            self.session.subscribers.discard(subscriber)

    @property
    def subscriber_count(self) -> int:
        with self._subscribers_lock:
            return len(self.session.subscribers)

    def handle_client_message(self, subscriber: Subscriber, message: Any) -> None:
        try:
            kind = protocol.parse_client_message(message)
        except protocol.ProtocolError as exc:
            self._enqueue(protocol.error_message(str(exc)), target=subscriber)
            return
        if kind == protocol.REBUILD_REQUEST:
            self.request_build("client request")
        elif kind == protocol.STATUS_REQUEST:
            self._enqueue(self.status_message(), target=subscriber)

    def _enqueue(
        self,
        message: Dict[str, Any],
        *,
        sequence: Optional[int] = None,
        target: Optional[Subscriber] = None,
    ) -> None:
        self._outbox.put(_Outgoing(message=message, sequence=sequence, target=target))

    def _broadcast_loop(self) -> None:
        while True:
            item = self._outbox.get()
            try:
                if item is _STOP:
                    return
                self._deliver(item)
            finally:
                self._outbox.task_done()

    def _deliver(self, item: _Outgoing) -> None:
        if item.sequence is not None:
            if item.sequence < self._last_broadcast_sequence:
                self.logger.debug("Dropping stale %s for build %d", item.message["type"], item.sequence)
                return
            self._last_broadcast_sequence = item.sequence
        if item.target is not None:
            recipients = [item.target]
        else:
            with self._subscribers_lock:
                recipients = list(self.session.subscribers)
        for subscriber in recipients:
            try:
                subscriber.send(item.message)
            except Exception as exc:
                self.logger.debug("Removing subscriber after failed send: %s", exc)
                self.unsubscribe(subscriber)

    # status --------------------------------------------------------------

    @property
    def building(self) -> bool:
        with self._cond:
            return self._building

    @property
    def last_result(self) -> Optional[BuildResult]:
        with self._cond:
            return self._last_result

    @property
    def last_successful_result(self) -> Optional[BuildResult]:
        with self._cond:
            return self._last_success

    def status(self) -> Dict[str, Any]:
        with self._cond:
            building = self._building
            timestamp = self._last_build_timestamp
        return {
            "building": building,
            "lastBuildTimestamp": timestamp,
            "subscriberCount": self.subscriber_count,
        }

    def status_message(self) -> Dict[str, Any]:
        status = self.status()
        return protocol.status_message(
            building=status["building"],
            last_build_timestamp=status["lastBuildTimestamp"],
            subscriber_count=status["subscriberCount"],
        )

    def wait_until_idle(self, timeout: float = 5.0) -> bool:
        """Block until no change, build or message is pending; False on timeout."""
        deadline = time.monotonic() + timeout
        with self._cond:
            while True:
                idle = (
                    not self._requested
                    and not self._building
                    and self.changes.unfinished_tasks == 0
                    and self._outbox.unfinished_tasks == 0
                )
                if idle:
                    return True
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._cond.wait(min(remaining, 0.01))


__all__ = ["BuildRunner", "DevOrchestrator", "RebuildSession", "Subscriber"]
