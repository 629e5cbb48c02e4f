"""Upload batch detection engine."""

import logging
import os
import queue
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Union

from .classifier import EventClassifier
from .config import WatcherConfig
from .exceptions import HistoryError, SessionAlreadyActiveError
from .fs_watcher import WatchSession
from .history import HistoryStore
from .listener import BatchListener
from .models import BatchView, EventKind, RawFSEvent
from .notifier import UpdateNotifier
from .registry import BatchRegistry
from .scanner import CompletionScanner

logger = logging.getLogger(__name__)

# Wakes the consumer thread when the session stops
_STOP = object()


class WatchEngine:
    """
    Infers upload batches from file system activity in a watched folder.

    Owns the batch registry, the watch session and the background threads
    of a session: the event consumer, the completion scanner and the
    refresh notifier. Only one session runs at a time.
    """

    def __init__(
        self,
        config: Optional[WatcherConfig] = None,
        listener: Optional[BatchListener] = None,
        history: Optional[HistoryStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the engine.

        Args:
            config: Watcher configuration, read live on every event and scan
            listener: Receives batch notifications
            history: Store for persisting batches between runs
            clock: Source of Unix timestamps
        """
        self.config = config or WatcherConfig()
        self.listener = listener or BatchListener()
        self.history = history

        self.registry = BatchRegistry(
            case_insensitive=self.config.case_insensitive_folders,
            max_history=self.config.max_history,
            clock=clock,
        )
        self.classifier = EventClassifier(self.config)
        self.notifier = UpdateNotifier(self.registry.snapshot, self._render)
        self.scanner = CompletionScanner(
            self.registry,
            self.config,
            on_completed=self._on_batch_completed,
            on_tick=self._on_scan_tick,
        )
        self._session = WatchSession(self._enqueue_event)

        self._events: "queue.Queue[object]" = queue.Queue()
        self._running = False
        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []
        self._session_lock = threading.Lock()
        self._history_lock = threading.Lock()

        self._load_history()

    # --- History ---

    def _load_history(self) -> None:
        if self.history is None or not self.config.save_history:
            return
        try:
            restored = self.registry.restore(self.history.load())
            logger.info(f"Restored {restored} batch(es) from history")
        except HistoryError as e:
            logger.error(f"Could not load history: {e}")

    def _save_history(self) -> None:
        if self.history is None or not self.config.save_history:
            return
        with self._history_lock:
            try:
                self.history.save(self.registry.snapshot())
            except HistoryError as e:
                logger.error(f"Could not save history: {e}")

    # --- Callbacks ---

    def _render(self, batches: List[BatchView]) -> None:
        self.listener.on_state_changed(batches)

    def _on_batch_completed(self, view: BatchView) -> None:
        if self.config.notify_on_complete:
            self.listener.on_batch_completed(view.folder, view.file_count, view.total_size)

    def _on_scan_tick(self, promoted: List[BatchView]) -> None:
        if promoted:
            self._save_history()
        self.notifier.request()

    def _enqueue_event(self, raw_event: RawFSEvent) -> None:
        """Called on the watchdog thread; hands the event to the consumer."""
        self._events.put(raw_event)

    # --- Event handling ---

    def _apply_registry_settings(self) -> None:
        """Carry the live folder case policy and history cap over to the registry."""
        self.registry.case_insensitive = self.config.case_insensitive_folders
        self.registry.max_history = self.config.max_history

    def add_file(self, path: Union[str, Path], size: Optional[int] = None) -> bool:
        """
        Record an accepted file and report a batch start.

        Args:
            path: Path of the file
            size: Observed size; looked up when omitted

        Returns:
            True if the file started a new batch
        """
        path = Path(path)
        self._apply_registry_settings()
        is_new_batch = self.registry.add_file(path, size)
        if is_new_batch and self.config.notify_on_start:
            folder, file_name = self.registry.split_path(path)
            try:
                self.listener.on_new_batch_started(folder, file_name)
            except Exception as e:
                logger.error(f"Batch start callback failed for {folder}: {e}")
        self.notifier.request()
        return is_new_batch

    def process(self, raw_event: RawFSEvent) -> bool:
        """
        Handle one raw filesystem event.

        Args:
            raw_event: Event from the watch session

        Returns:
            True if the event was accepted into a batch
        """
        if raw_event.kind not in (EventKind.CREATE, EventKind.WRITE, EventKind.RENAME):
            return False

        path = raw_event.path
        if raw_event.is_directory or path.is_dir():
            if raw_event.kind != EventKind.WRITE and self._running and self._session.recursive:
                self._watch_new_directory(path)
            return False

        if not self.classifier.accepts(path):
            return False

        logger.debug(f"Accepted {raw_event.kind.value}: {path}")
        self.add_file(path)
        return True

    def _watch_new_directory(self, directory: Path) -> None:
        """Watch a directory that appeared mid-session and pick up files already in it."""
        if not self._session.add_directory(directory):
            return
        for dirpath, _dirnames, filenames in os.walk(directory):
            for name in filenames:
                path = Path(dirpath) / name
                if self.classifier.accepts(path):
                    self.add_file(path)

    def _event_consumer_loop(self, events: "queue.Queue[object]", stop_event: threading.Event) -> None:
        """Worker loop that feeds raw events through classification and correlation."""
        logger.debug("Event consumer loop started")

        while not stop_event.is_set():
            try:
                item = events.get(timeout=0.5)
            except queue.Empty:
                continue

            if item is _STOP:
                break

            try:
                self.process(item)
            except Exception as e:
                logger.error(f"Error processing event {item}: {e}")

        logger.debug("Event consumer loop stopped")

    # --- Lifecycle ---

    def start(self, path: Union[str, Path]) -> None:
        """
        Start watching a folder.

        Returns once the watch is live; the session runs in background
        threads until stop() is called.

        Args:
            path: Root folder to watch

        Raises:
            SessionAlreadyActiveError: If a session is already running
            WatchStartError: If the folder cannot be watched
        """
        with self._session_lock:
            if self._running:
                raise SessionAlreadyActiveError("Watch session is already running")

            self._stop_event = threading.Event()
            self._events = queue.Queue()
            self._session.start(Path(path), self.config.monitor_subdirs)
            self._running = True

            self._threads = [
                threading.Thread(
                    target=self._event_consumer_loop,
                    args=(self._events, self._stop_event),
                    name="EventConsumer",
                ),
                threading.Thread(target=self.scanner.run, args=(self._stop_event,), name="CompletionScanner"),
                threading.Thread(target=self.notifier.run, args=(self._stop_event,), name="UpdateNotifier"),
            ]
            for thread in self._threads:
                thread.daemon = True
                thread.start()

        logger.info(f"Monitoring started: {self._session.root}")

    def stop(self) -> bool:
        """
        Stop the running session.

        Signals all session threads, waits for them to exit, then releases
        the watch. Safe to call when nothing is running, and from a listener
        callback: the calling session thread is not joined and exits on its
        own once the callback returns.

        Returns:
            True if a session was stopped
        """
        with self._session_lock:
            if not self._running:
                return False

            self._stop_event.set()
            self._events.put(_STOP)

            current = threading.current_thread()
            for thread in self._threads:
                if thread is not current:
                    thread.join()
            self._threads.clear()

            self._session.stop()
            self._running = False

        self._save_history()
        logger.info("Monitoring stopped")
        return True

    # --- Commands ---

    def scan(self) -> List[BatchView]:
        """Run one completion sweep immediately."""
        return self.scanner.scan()

    def sign_batch(self, batch_id: str) -> bool:
        signed = self.registry.sign_batch(batch_id)
        if signed:
            self._save_history()
            self.notifier.request()
        return signed

    def sign_all(self) -> int:
        count = self.registry.sign_all()
        if count:
            self._save_history()
            self.notifier.request()
        return count

    def clear_signed(self) -> int:
        count = self.registry.clear_signed()
        if count:
            self._save_history()
            self.notifier.request()
        return count

    def clear_all(self) -> int:
        count = self.registry.clear_all()
        self._save_history()
        self.notifier.request()
        return count

    def snapshot(self) -> List[BatchView]:
        return self.registry.snapshot()

    def state(self) -> dict:
        """
        Get a summary of the engine state.

        Returns:
            Dict with running flag, root, watched directory count and batch counts
        """
        counts = self.registry.counts()
        return {
            "is_running": self._running,
            "root": str(self._session.root) if self._running else None,
            "dir_count": len(self._session),
            "uploading_count": counts["uploading"],
            "unsigned_count": counts["unsigned"],
            "batch_count": len(self.registry),
        }

    @property
    def is_running(self) -> bool:
        """Check if a session is running."""
        return self._running

    def close(self) -> None:
        """Stop any running session."""
        self.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
