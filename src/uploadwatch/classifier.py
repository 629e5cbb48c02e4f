"""Decides which file system paths belong in an upload batch."""

from pathlib import Path
from typing import Dict, List, Set, Union

from .config import WatcherConfig

PathLike = Union[str, Path]

# Markers left by editors, browsers and transfer clients while a write is
# still in progress.
TEMP_FILE_MARKERS = [".tmp", ".temp", ".part", ".partial", ".crdownload", "~$", ".swp", ".lock"]

CATEGORY_EXTENSIONS: Dict[str, List[str]] = {
    "video": [".mp4", ".avi", ".mkv", ".mov", ".wmv", ".flv", ".webm", ".m4v", ".mpeg", ".mpg", ".3gp", ".ts"],
    "image": [".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".svg", ".ico", ".tiff", ".psd"],
    "audio": [".mp3", ".wav", ".flac", ".aac", ".ogg", ".wma", ".m4a", ".opus"],
    "doc": [".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".txt", ".md", ".csv"],
    "archive": [".zip", ".rar", ".7z", ".tar", ".gz", ".bz2", ".xz"],
}


def is_temporary_artifact(path: PathLike) -> bool:
    """
    Check if a path names a transient, not-yet-final file.

    Args:
        path: Path to check

    Returns:
        True if the base name contains a temporary-file marker
    """
    name = Path(path).name.lower()
    for marker in TEMP_FILE_MARKERS:
        if marker in name or name.startswith(marker):
            return True
    return False


def enabled_categories(config: WatcherConfig) -> List[str]:
    flags = {
        "video": config.video_enabled,
        "image": config.image_enabled,
        "audio": config.audio_enabled,
        "doc": config.doc_enabled,
        "archive": config.archive_enabled,
    }
    return [name for name, enabled in flags.items() if enabled]


def enabled_extensions(config: WatcherConfig) -> Set[str]:
    """
    Get every extension currently accepted by the configuration.

    Args:
        config: Watcher configuration

    Returns:
        Union of enabled category extensions and custom extensions
    """
    exts: Set[str] = set()
    for category in enabled_categories(config):
        exts.update(CATEGORY_EXTENSIONS[category])
    exts.update(config.custom_extensions())
    return exts


def is_monitored_file(path: PathLike, config: WatcherConfig) -> bool:
    """
    Check if a file should be added to a batch.

    Temporary artifacts are always rejected, whatever their extension.

    Args:
        path: Path of the file
        config: Watcher configuration

    Returns:
        True if the lower-cased extension is enabled
    """
    if is_temporary_artifact(path):
        return False
    return Path(path).suffix.lower() in enabled_extensions(config)


def is_ignored_folder(path: PathLike, config: WatcherConfig) -> bool:
    """
    Check if a path lies inside one of the ignored folder names.

    Args:
        path: Path of the file
        config: Watcher configuration

    Returns:
        True if any parent directory name is in ``config.ignore_folders``
    """
    if not config.ignore_folders:
        return False
    ignored = set(config.ignore_folders)
    return any(part in ignored for part in Path(path).parent.parts)


class EventClassifier:
    """Accept/reject decision for file paths against a live configuration."""

    def __init__(self, config: WatcherConfig):
        self.config = config

    def accepts(self, path: PathLike) -> bool:
        if is_ignored_folder(path, self.config):
            return False
        return is_monitored_file(path, self.config)
