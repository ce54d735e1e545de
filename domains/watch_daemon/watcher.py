#!/usr/bin/env python3
"""
Directory watcher for the sanitization daemon.

Subscribes to filesystem events with watchdog, filters and deduplicates them,
and hands qualifying files to a caller-supplied handler on a bounded worker
pool.

Each accepted event becomes one unit of work: wait a short settle delay so
slow writers can finish, run the handler, log the outcome, and record the
dispatch time. A path is dispatched at most once per dedupe window, even when
the handler fails. ``stop()`` cancels units still in their settle delay and
waits for running handlers to finish before returning.
"""

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from loguru import logger as default_logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from app.utils.errors import WatcherError
from app.utils.helpers import should_exclude_path


FileHandler = Callable[[str], None]

SETTLE_DELAY = 0.5  # seconds
DEDUPE_WINDOW = 60.0
CLEANUP_INTERVAL = 15 * 60.0
RECORD_TTL = 60 * 60.0
PURGE_CHUNK_SIZE = 1000


@dataclass(frozen=True)
class WatchOptions:
    """Watcher behaviour. Fixed for the lifetime of a watcher."""

    extensions: Tuple[str, ...] = ()  # empty allows every extension
    exclude_dirs: Tuple[str, ...] = ()  # path substrings
    min_file_age: float = 0.0  # seconds since last modification
    recursive: bool = True
    max_workers: int = 4
    settle_delay: float = SETTLE_DELAY
    dedupe_window: float = DEDUPE_WINDOW
    cleanup_interval: float = CLEANUP_INTERVAL
    record_ttl: float = RECORD_TTL


class ProcessedRegistry:
    """
    Last-dispatch timestamps per path.

    Every access goes through one lock. ``claim`` checks and records in a
    single critical section so two concurrent events for the same path
    cannot both pass. ``purge`` scans in chunks, releasing the lock between
    chunks.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: Dict[str, float] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def claim(self, path: str, window: float) -> bool:
        """Record ``path`` as dispatched unless it was within ``window`` seconds."""
        with self._lock:
            now = self._clock()
            last = self._entries.get(path)
            if last is not None and now - last < window:
                return False
            self._entries[path] = now
            return True

    def mark(self, path: str):
        """Set the dispatch time of ``path`` to now."""
        with self._lock:
            self._entries[path] = self._clock()

    def last_dispatch(self, path: str) -> Optional[float]:
        with self._lock:
            return self._entries.get(path)

    def purge(self, max_age: float, chunk_size: int = PURGE_CHUNK_SIZE) -> int:
        """
        Remove entries older than ``max_age`` seconds.

        Returns:
            Number of entries removed
        """
        with self._lock:
            cutoff = self._clock() - max_age
            paths = list(self._entries)

        removed = 0
        for start in range(0, len(paths), chunk_size):
            with self._lock:
                for path in paths[start:start + chunk_size]:
                    stamp = self._entries.get(path)
                    if stamp is not None and stamp < cutoff:
                        del self._entries[path]
                        removed += 1
        return removed

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._entries


class _WatchEventHandler(FileSystemEventHandler):
    """Forwards create/write events to the owning watcher."""

    def __init__(self, watcher: "Watcher"):
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        self.watcher.handle_path(event.src_path, created=True)

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory modifications are noisy and carry no new files
        if event.is_directory:
            return
        self.watcher.handle_path(event.src_path, created=False)

    def on_moved(self, event: FileSystemEvent) -> None:
        dest = getattr(event, "dest_path", None)
        if dest:
            self.watcher.handle_path(dest, created=True)


class Watcher:
    """Watches directories and dispatches qualifying files to a handler."""

    def __init__(
        self,
        dirs: Iterable[str],
        options: WatchOptions,
        handler: FileHandler,
        logger=None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the watcher.

        Args:
            dirs: Root directories; missing or non-directory entries are
                logged and skipped
            options: Watch behaviour
            handler: Called with each qualifying file path; exceptions are
                logged
            logger: Logger with debug/info/warning/error methods
            clock: Wall-clock source, seconds since the epoch

        Raises:
            WatcherError: If no valid directory remains
        """
        self.logger = logger or default_logger
        self.options = options
        self.handler = handler
        self.registry = ProcessedRegistry(clock)
        self._clock = clock
        self._extensions = {_normalise_extension(ext) for ext in options.extensions}

        self.dirs: List[str] = []
        for directory in dirs:
            if not os.path.exists(directory):
                self.logger.warning(f"Skipping invalid directory {directory}: does not exist")
                continue
            if not os.path.isdir(directory):
                self.logger.warning(f"Skipping non-directory path {directory}")
                continue
            self.dirs.append(directory)

        if not self.dirs:
            raise WatcherError("no valid directories to watch")

        self.running = False
        self._observer: Optional[Observer] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._event_handler = _WatchEventHandler(self)
        self._stop_event = threading.Event()
        self._cleanup_thread: Optional[threading.Thread] = None
        self._watched: Set[str] = set()
        self._watch_lock = threading.Lock()
        self._pending: Set[threading.Event] = set()
        self._pending_lock = threading.Lock()

    @property
    def watched_directories(self) -> List[str]:
        with self._watch_lock:
            return sorted(self._watched)

    def start(self):
        """
        Start watching.

        Raises:
            WatcherError: If already running
        """
        if self.running:
            raise WatcherError("watcher already running")

        self._stop_event = threading.Event()
        self._executor = ThreadPoolExecutor(
            max_workers=self.options.max_workers,
            thread_name_prefix="scrubwatch-worker",
        )
        self._observer = Observer()
        self._observer.daemon = True
        self._observer.start()

        for directory in self.dirs:
            if self.options.recursive:
                self._watch_tree(directory)
            else:
                self._watch_directory(directory)

        self._cleanup_thread = threading.Thread(
            target=self._cleanup_loop, name="scrubwatch-cleanup", daemon=True
        )
        self._cleanup_thread.start()

        self.running = True
        self.logger.info("File watcher started")

    def stop(self):
        """
        Stop watching and drain in-flight work.

        Units still waiting out their settle delay are cancelled; handlers
        already running are waited for.

        Raises:
            WatcherError: If the observer failed to shut down cleanly
        """
        if not self.running:
            return

        failure = None

        self._stop_event.set()
        with self._pending_lock:
            for token in self._pending:
                token.set()

        try:
            self._observer.stop()
            self._observer.join()
        except Exception as e:
            failure = e

        if self._cleanup_thread is not None:
            self._cleanup_thread.join()

        self._executor.shutdown(wait=True)

        with self._watch_lock:
            self._watched.clear()
        self.registry.clear()

        self.running = False
        self.logger.info("File watcher stopped")

        if failure is not None:
            raise WatcherError(f"failed to stop observer: {failure}") from failure

    def handle_path(self, path: str, created: bool = True):
        """Process one create/write notification for ``path``."""
        try:
            if os.path.isdir(path):
                if created and self.options.recursive:
                    if should_exclude_path(path, self.options.exclude_dirs):
                        return
                    self._watch_tree(path)
                return

            if self.should_process(path):
                self._dispatch(path)

        except Exception as e:
            self.logger.error(f"Watcher error for {path}: {e}")

    def should_process(self, path: str) -> bool:
        """
        Check extension, minimum age and dedupe window for ``path``.

        Passing this check claims the path in the dedupe registry.
        """
        ext = os.path.splitext(path)[1].lower()
        if self._extensions and ext not in self._extensions:
            return False

        if self.options.min_file_age > 0:
            try:
                modified = os.stat(path).st_mtime
            except OSError:
                return False
            # Recently modified files may still be being written
            if self._clock() - modified < self.options.min_file_age:
                return False

        return self.registry.claim(path, self.options.dedupe_window)

    def sweep(self) -> int:
        """Purge dedupe entries older than the record TTL."""
        removed = self.registry.purge(self.options.record_ttl)
        self.logger.debug(f"Cleaned processed files cache ({removed} removed)")
        return removed

    def _watch_tree(self, root: str):
        def on_walk_error(error: OSError):
            self.logger.warning(f"Error accessing path {error.filename}: {error}")

        for dirpath, dirnames, _ in os.walk(root, onerror=on_walk_error):
            if should_exclude_path(dirpath, self.options.exclude_dirs):
                dirnames[:] = []
                continue

            self._watch_directory(dirpath)
            dirnames[:] = [
                name for name in dirnames
                if not should_exclude_path(os.path.join(dirpath, name), self.options.exclude_dirs)
            ]

    def _watch_directory(self, path: str):
        with self._watch_lock:
            if path in self._watched:
                return
            try:
                self._observer.schedule(self._event_handler, path, recursive=False)
            except Exception as e:
                self.logger.warning(f"Failed to watch directory {path}: {e}")
                return
            self._watched.add(path)

        self.logger.debug(f"Watching directory: {path}")

    def _dispatch(self, path: str):
        token = threading.Event()
        with self._pending_lock:
            self._pending.add(token)

        try:
            self._executor.submit(self._process, path, token)
        except RuntimeError:
            # Executor already shut down
            with self._pending_lock:
                self._pending.discard(token)
            self.logger.debug(f"Dropped event for {path}: watcher stopping")

    def _process(self, path: str, token: threading.Event):
        try:
            if token.wait(self.options.settle_delay):
                self.logger.debug(f"Cancelled processing of {path}")
                return

            self.logger.debug(f"Processing file: {path}")

            try:
                self.handler(path)
            except Exception as e:
                self.logger.error(f"Failed to process file {path}: {e}")
            else:
                self.logger.info(f"Successfully processed file: {path}")

            self.registry.mark(path)

        finally:
            with self._pending_lock:
                self._pending.discard(token)

    def _cleanup_loop(self):
        while not self._stop_event.wait(self.options.cleanup_interval):
            self.sweep()


def _normalise_extension(ext: str) -> str:
    ext = ext.lower()
    return ext if ext.startswith(".") else f".{ext}"
