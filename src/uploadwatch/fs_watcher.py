"""File system watch session using the watchdog library."""

import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Set

from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch
from watchdog.events import (
    FileSystemEventHandler,
    DirCreatedEvent,
    DirMovedEvent,
)

from .exceptions import SessionAlreadyActiveError, SessionNotActiveError, WatchStartError
from .models import EventKind, RawFSEvent

logger = logging.getLogger(__name__)


class FSEventHandler(FileSystemEventHandler):
    """
    Handler that converts watchdog events to RawFSEvent.

    Only creations, modifications and moves are forwarded. Deletions and
    metadata-only changes never start or extend a batch.
    """

    def __init__(self, callback: Callable[[RawFSEvent], None]):
        super().__init__()
        self.callback = callback

    def _emit(self, kind: EventKind, path: Path, is_directory: bool) -> None:
        """Emit a RawFSEvent to the callback."""
        raw_event = RawFSEvent(
            kind=kind,
            path=path,
            is_directory=is_directory,
            timestamp=time.time(),
        )
        self.callback(raw_event)

    def on_created(self, event):
        is_dir = isinstance(event, DirCreatedEvent)
        self._emit(EventKind.CREATE, Path(os.fsdecode(event.src_path)), is_dir)

    def on_modified(self, event):
        self._emit(EventKind.WRITE, Path(os.fsdecode(event.src_path)), event.is_directory)

    def on_moved(self, event):
        is_dir = isinstance(event, DirMovedEvent)
        self._emit(EventKind.RENAME, Path(os.fsdecode(event.dest_path)), is_dir)


class WatchSession:
    """
    One run of native file system monitoring for a root folder.

    A recursive session schedules the root once with ``recursive=True`` so
    the whole tree shares a single emitter. If the platform refuses the
    recursive watch, the session falls back to one non-recursive watch per
    directory, where an unwatchable branch only drops that branch.
    Directories created while the session runs are registered through
    add_directory().
    """

    def __init__(self, event_callback: Callable[[RawFSEvent], None]):
        """
        Initialize the session.

        Args:
            event_callback: Callback for raw filesystem events
        """
        self.event_callback = event_callback
        self.root: Optional[Path] = None
        self.recursive = False
        self.per_directory = False
        self._observer: Optional[Observer] = None
        self._handler: Optional[FSEventHandler] = None
        self._watches: Dict[Path, ObservedWatch] = {}
        self._directories: Set[Path] = set()
        self._lock = threading.Lock()

    def start(self, path: Path, recursive: bool) -> None:
        """
        Start watching a root directory.

        Args:
            path: Root directory to watch
            recursive: Also watch every subdirectory

        Raises:
            WatchStartError: If the root cannot be watched
            SessionAlreadyActiveError: If the session is already running
        """
        root = Path(path).resolve()

        with self._lock:
            if self._observer is not None:
                raise SessionAlreadyActiveError(f"Already watching {self.root}")

            if not root.is_dir():
                raise WatchStartError(f"Not a directory: {root}")

            handler = FSEventHandler(self.event_callback)
            observer = Observer()
            per_directory = False

            try:
                observer.start()
                try:
                    self._watches[root] = observer.schedule(handler, str(root), recursive=recursive)
                except Exception as e:
                    if not recursive:
                        raise
                    logger.warning(
                        f"Recursive watch of {root} failed ({e}), watching directories one by one"
                    )
                    per_directory = True
                    self._watches[root] = observer.schedule(handler, str(root), recursive=False)
            except Exception as e:
                self._watches.clear()
                observer.stop()
                if observer.is_alive():
                    observer.join(timeout=5.0)
                raise WatchStartError(f"Cannot watch {root}: {e}") from e

            self._observer = observer
            self._handler = handler
            self.root = root
            self.recursive = recursive
            self.per_directory = per_directory
            self._directories = {root}

            if recursive:
                self._add_tree(root)

            count = len(self._directories)

        logger.info(f"Watching {root} ({count} director{'y' if count == 1 else 'ies'})")

    @staticmethod
    def _log_walk_error(error: OSError) -> None:
        logger.debug(f"Skipping unreadable directory: {error}")

    def _add(self, directory: Path) -> bool:
        """Register a single directory. Caller holds the lock."""
        if directory in self._directories:
            return False
        if self.per_directory:
            try:
                self._watches[directory] = self._observer.schedule(
                    self._handler, str(directory), recursive=False
                )
            except Exception as e:
                logger.warning(f"Could not watch {directory}: {e}")
                return False
        self._directories.add(directory)
        return True

    def _add_tree(self, directory: Path) -> None:
        """Register every directory below ``directory``. Caller holds the lock."""
        for dirpath, _dirnames, _filenames in os.walk(directory, onerror=self._log_walk_error):
            sub = Path(dirpath)
            if sub != directory:
                self._add(sub)

    def add_directory(self, directory: Path) -> bool:
        """
        Register a directory created after the session started.

        Subdirectories already present inside it are registered too, since
        files may have landed there before the watch was in place.

        Args:
            directory: Directory to watch

        Returns:
            True if the directory was newly registered

        Raises:
            SessionNotActiveError: If the session is not running
        """
        directory = Path(directory)
        with self._lock:
            if self._observer is None:
                raise SessionNotActiveError(f"Cannot add {directory}: session is not running")
            if not self.recursive:
                return False
            added = self._add(directory)
            self._add_tree(directory)
        if added:
            logger.debug(f"Watching new directory {directory}")
        return added

    def stop(self) -> bool:
        """
        Stop watching and release the observer.

        Safe to call repeatedly.

        Returns:
            True if a running watch was stopped
        """
        with self._lock:
            observer = self._observer
            if observer is None:
                return False

            self._observer = None
            self._handler = None
            self._watches.clear()
            self._directories.clear()

        observer.unschedule_all()
        observer.stop()
        observer.join(timeout=5.0)
        logger.info(f"Stopped watching {self.root}")
        return True

    def is_watching(self, directory: Path) -> bool:
        with self._lock:
            return Path(directory) in self._directories

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._observer is not None

    @property
    def watch_count(self) -> int:
        """Number of native watches scheduled on the observer."""
        with self._lock:
            return len(self._watches)

    def __len__(self) -> int:
        """Return the number of watched directories."""
        with self._lock:
            return len(self._directories)
