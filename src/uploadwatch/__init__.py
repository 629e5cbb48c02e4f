"""
Upload Watcher Package

Watches a folder tree and infers, from raw file system events, when a batch
of uploads into a folder has started and when it has finished.

Features:
- Category and custom extension filtering with temp-file suppression
- Per-folder batch correlation with monotonic size tracking
- Inactivity-based completion detection
- Coalesced refresh notifications for presentation layers
- Batch history and settings persistence
"""

from .models import (
    BatchStatus,
    EventKind,
    Batch,
    BatchView,
    RawFSEvent,
    format_size,
)

from .config import WatcherConfig

from .exceptions import (
    WatcherError,
    WatchStartError,
    SessionAlreadyActiveError,
    SessionNotActiveError,
    SettingsError,
    HistoryError,
)

from .classifier import (
    CATEGORY_EXTENSIONS,
    TEMP_FILE_MARKERS,
    EventClassifier,
    enabled_extensions,
    is_ignored_folder,
    is_monitored_file,
    is_temporary_artifact,
)
from .registry import BatchRegistry
from .fs_watcher import WatchSession, FSEventHandler
from .scanner import CompletionScanner
from .notifier import UpdateNotifier
from .listener import BatchListener, LoggingListener
from .history import HistoryStore
from .settings import SettingsManager
from .engine import WatchEngine


__all__ = [
    # Models
    "BatchStatus",
    "EventKind",
    "Batch",
    "BatchView",
    "RawFSEvent",
    "format_size",
    # Config
    "WatcherConfig",
    # Exceptions
    "WatcherError",
    "WatchStartError",
    "SessionAlreadyActiveError",
    "SessionNotActiveError",
    "SettingsError",
    "HistoryError",
    # Classification
    "CATEGORY_EXTENSIONS",
    "TEMP_FILE_MARKERS",
    "EventClassifier",
    "enabled_extensions",
    "is_ignored_folder",
    "is_monitored_file",
    "is_temporary_artifact",
    # Components
    "BatchRegistry",
    "WatchSession",
    "FSEventHandler",
    "CompletionScanner",
    "UpdateNotifier",
    "BatchListener",
    "LoggingListener",
    "HistoryStore",
    "SettingsManager",
    # Engine
    "WatchEngine",
]

__version__ = "0.1.0"
