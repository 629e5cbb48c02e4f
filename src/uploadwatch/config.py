"""Configuration for the upload watcher package."""

import sys
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Union

MIN_COMPLETION_TIMEOUT = 10
DEFAULT_COMPLETION_TIMEOUT = 30


def _default_case_insensitive() -> bool:
    return sys.platform in ("win32", "darwin")


@dataclass
class WatcherConfig:
    """
    Configuration options for the upload watcher.

    The engine reads this object on every event and every scan tick, so
    toggling a category or changing the timeout takes effect immediately.

    Attributes:
        video_enabled: Accept video files
        image_enabled: Accept image files
        audio_enabled: Accept audio files
        doc_enabled: Accept document files
        archive_enabled: Accept archive files
        custom_exts: Extra extensions, comma-separated or as a list
        monitor_subdirs: Watch the whole tree below the root
        completion_timeout: Seconds of inactivity before a batch is completed
        min_completion_timeout: Timeouts below this are replaced by the default
        default_completion_timeout: Replacement for timeouts below the floor
        scan_interval: Seconds between completion scans
        notify_on_start: Call the listener when a batch starts
        notify_on_complete: Call the listener when a batch completes
        save_history: Persist the batch list between runs
        ignore_folders: Directory names whose contents are never batched
        max_history: Maximum number of finished batches kept in memory
        case_insensitive_folders: Fold case when correlating folders
    """
    video_enabled: bool = True
    image_enabled: bool = False
    audio_enabled: bool = False
    doc_enabled: bool = False
    archive_enabled: bool = False
    custom_exts: Union[str, List[str]] = ""
    monitor_subdirs: bool = True
    completion_timeout: int = DEFAULT_COMPLETION_TIMEOUT
    min_completion_timeout: int = MIN_COMPLETION_TIMEOUT
    default_completion_timeout: int = DEFAULT_COMPLETION_TIMEOUT
    scan_interval: float = 3.0
    notify_on_start: bool = True
    notify_on_complete: bool = True
    save_history: bool = True
    ignore_folders: List[str] = field(default_factory=lambda: [
        "node_modules",
        ".git",
        "__pycache__",
        ".idea",
        "vendor",
        "target",
    ])
    max_history: int = 100
    case_insensitive_folders: bool = field(default_factory=_default_case_insensitive)

    def custom_extensions(self) -> List[str]:
        """
        Normalize the custom extension list.

        Entries are trimmed, lower-cased and given a leading dot. Empty
        entries are dropped.

        Returns:
            List of normalized extensions
        """
        if isinstance(self.custom_exts, str):
            raw = self.custom_exts.split(",")
        else:
            raw = list(self.custom_exts)

        exts = []
        for ext in raw:
            ext = ext.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = "." + ext
            exts.append(ext)
        return exts

    def effective_completion_timeout(self) -> float:
        """
        Get the completion timeout in seconds, clamped to its floor.

        Returns:
            The configured timeout, or the default when it is below the floor
        """
        if self.completion_timeout < self.min_completion_timeout:
            return float(self.default_completion_timeout)
        return float(self.completion_timeout)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, list):
                value = list(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WatcherConfig":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
