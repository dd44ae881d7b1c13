"""Filesystem watcher for pack source trees.

A single watchdog observer covers every enabled source root. Its thread
only converts notifications into ChangeEvents and queues them; the
thread iterating ``ProjectWatcher.events()`` does all destination work,
one event at a time.

    >>> with ProjectWatcher(synchronizer.source_roots) as watcher:
    ...     for result in router.run(watcher.events()):
    ...         print(result.action)
"""

from __future__ import annotations

import enum
import queue
import threading
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from watchdog.events import (
    DirModifiedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
    FileSystemMovedEvent,
)
from watchdog.observers import Observer

from packsmith.errors import WatcherError
from packsmith.router import ChangeEvent, ChangeKind

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

    from packsmith.targets import TreeKind

logger = structlog.get_logger(__name__)


class WatcherState(enum.Enum):
    """Whether a ProjectWatcher has a live observer."""

    STOPPED = "stopped"
    RUNNING = "running"


def _decode(path: str | bytes) -> Path:
    if isinstance(path, bytes):
        path = path.decode("utf-8")
    return Path(path)


class _SourceTreeEventHandler(FileSystemEventHandler):
    """Internal handler converting watchdog events into ChangeEvents.

    Directory-modified notifications are dropped: they only restate
    changes already reported for the children, and routing them would
    resync the whole parent directory on every save.
    """

    def __init__(self, events: queue.Queue[ChangeEvent]) -> None:
        super().__init__()
        self._events = events

    def _put(self, path: str | bytes, kind: ChangeKind, is_directory: bool) -> None:
        event = ChangeEvent(path=_decode(path), kind=kind, is_directory=is_directory)
        logger.debug("change_event_queued", path=str(event.path), kind=kind.value)
        self._events.put(event)

    def on_created(self, event: FileSystemEvent) -> None:
        self._put(event.src_path, ChangeKind.CREATED, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        if isinstance(event, DirModifiedEvent):
            return
        self._put(event.src_path, ChangeKind.MODIFIED, event.is_directory)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._put(event.src_path, ChangeKind.REMOVED, event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        # A rename is a removal at the old path and a creation at the new one
        self._put(event.src_path, ChangeKind.REMOVED, event.is_directory)
        if isinstance(event, FileSystemMovedEvent):
            self._put(event.dest_path, ChangeKind.CREATED, event.is_directory)


class ProjectWatcher:
    """Watches pack source trees for changes.

    One observer covers every root. Events from all trees share a single
    queue, so the consumer sees them in the order they happened.

    Example:
        >>> with ProjectWatcher({TreeKind.BEHAVIOR: Path("BP")}) as watcher:
        ...     for event in watcher.events():
        ...         handle(event)
    """

    def __init__(self, roots: Mapping[TreeKind, Path | str]) -> None:
        """Set up the watcher without starting it.

        Raises:
            WatcherError: No roots were given, or one is not a directory.
        """
        if not roots:
            raise WatcherError("No source trees to watch")

        self._roots = {kind: Path(root).absolute() for kind, root in roots.items()}
        missing = [root for root in self._roots.values() if not root.is_dir()]
        if missing:
            raise WatcherError(f"Source directory does not exist: {missing[0]}")

        self._queue: queue.Queue[ChangeEvent] = queue.Queue()
        self._observer: BaseObserver | None = None
        self._guard = threading.Lock()
        self._log = logger.bind(roots=sorted(str(root) for root in self._roots.values()))

    @property
    def roots(self) -> dict[TreeKind, Path]:
        """Copy of the watched roots, keyed by tree kind."""
        return dict(self._roots)

    @property
    def state(self) -> WatcherState:
        with self._guard:
            return WatcherState.STOPPED if self._observer is None else WatcherState.RUNNING

    def _spawn_observer(self) -> BaseObserver:
        observer = Observer()
        handler = _SourceTreeEventHandler(self._queue)
        for root in self._roots.values():
            observer.schedule(handler, str(root), recursive=True)
        observer.start()
        return observer

    def start(self) -> None:
        """Begin delivering events for every root.

        Raises:
            WatcherError: start() was already called without stop().
        """
        with self._guard:
            if self._observer is not None:
                raise WatcherError("Watcher is already running")
            self._observer = self._spawn_observer()
        self._log.info("watch_started", trees=len(self._roots))

    def stop(self) -> None:
        """Stop the observer thread. Does nothing when already stopped."""
        with self._guard:
            observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5.0)
        self._log.info("watch_stopped", pending=self._queue.qsize())

    def events(self, poll_interval: float = 0.25) -> Iterator[ChangeEvent]:
        """Yield queued change events in arrival order.

        The generator ends once the queue is empty and the watcher has
        been stopped. ``poll_interval`` bounds how long that takes to
        notice.
        """
        while True:
            try:
                event = self._queue.get(timeout=poll_interval)
            except queue.Empty:
                if self.state is WatcherState.STOPPED:
                    break
                continue
            yield event

    def __enter__(self) -> ProjectWatcher:
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()
