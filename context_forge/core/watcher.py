"""File watcher that keeps the index current while the server runs.

Uses watchdog to observe the project tree. Create and modify events are
debounced per path with a cancellable ``threading.Timer``; a new event for a
path resets its timer instead of stacking a second one. Deletes bypass the
debounce and remove the file immediately.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from context_forge.core.indexer import Indexer
from context_forge.languages import language_for_path

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.1


class _IndexEventHandler(FileSystemEventHandler):
    """Forwards watchdog events for files to the watcher."""

    def __init__(self, watcher: FileWatcher) -> None:
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.handle_change(_event_path(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.handle_change(_event_path(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.handle_delete(_event_path(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.handle_delete(_event_path(event.src_path))
            self._watcher.handle_change(_event_path(event.dest_path))


def _event_path(raw: str | bytes) -> Path:
    return Path(os.fsdecode(raw))


class FileWatcher:
    """Watches a project tree and re-indexes changed files.

    Indexing failures from background events are logged and dropped; the
    watch loop keeps running. Once ``stop()`` returns, no timer started by
    this watcher will touch the store.
    """

    def __init__(
        self,
        indexer: Indexer,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        self._indexer = indexer
        self._debounce = debounce_seconds
        self._observer_factory = observer_factory
        self._observer: Observer | None = None
        self._timers: dict[Path, threading.Timer] = {}
        self._lock = threading.Lock()
        self._stopped = False

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    @property
    def pending(self) -> list[Path]:
        """Paths with a debounce timer still waiting to fire."""
        with self._lock:
            return sorted(self._timers)

    def start(self) -> None:
        """Begin observing the project root. Calling it twice is a no-op."""
        if self._observer is not None:
            return
        with self._lock:
            self._stopped = False
        observer = self._observer_factory()
        observer.schedule(
            _IndexEventHandler(self), str(self._indexer.project_root), recursive=True
        )
        observer.start()
        self._observer = observer
        logger.info("watching %s", self._indexer.project_root)

    def stop(self) -> None:
        """Cancel pending timers and release the observer."""
        with self._lock:
            self._stopped = True
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()

        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join()
            logger.info("stopped watching %s", self._indexer.project_root)

    def handle_change(self, path: Path) -> None:
        """Schedule a re-index of ``path`` after the debounce window."""
        if not self._is_eligible(path):
            return
        with self._lock:
            if self._stopped:
                return
            existing = self._timers.pop(path, None)
            if existing is not None:
                existing.cancel()
            timer = threading.Timer(self._debounce, self._fire, args=(path,))
            timer.daemon = True
            self._timers[path] = timer
            timer.start()

    def handle_delete(self, path: Path) -> None:
        """Drop a pending re-index and remove ``path`` from the index now."""
        if not self._is_eligible(path):
            return
        with self._lock:
            if self._stopped:
                return
            existing = self._timers.pop(path, None)
            if existing is not None:
                existing.cancel()
            try:
                self._indexer.remove_file(path)
                logger.info("removed %s", self._indexer.relative_path(path))
            except Exception:
                logger.exception("failed to remove %s", path)

    def _fire(self, path: Path) -> None:
        with self._lock:
            if self._stopped or self._timers.get(path) is not threading.current_thread():
                return
            del self._timers[path]
            try:
                count = self._indexer.index_file(path)
                logger.info("reindexed %s (%d symbols)", self._indexer.relative_path(path), count)
            except Exception:
                logger.exception("failed to index %s", path)

    def _is_eligible(self, path: Path) -> bool:
        return language_for_path(path) is not None and not self._indexer.should_ignore(path)

    def __enter__(self) -> FileWatcher:
        self.start()
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.stop()
