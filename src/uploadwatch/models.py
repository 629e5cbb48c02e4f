"""Data models for the upload watcher package."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import time
import uuid


class BatchStatus(Enum):
    """Lifecycle states of an upload batch."""
    UPLOADING = "uploading"
    COMPLETED = "completed"
    SIGNED = "signed"


class EventKind(Enum):
    """File system event kinds the engine reacts to."""
    CREATE = "create"
    WRITE = "write"
    RENAME = "rename"


@dataclass
class RawFSEvent:
    """
    Event from the filesystem watcher before classification.

    Attributes:
        kind: The event kind
        path: Path of the affected entry (destination path for renames)
        is_directory: Whether the entry is a directory
        timestamp: Unix timestamp when the event occurred
    """
    kind: EventKind
    path: Path
    is_directory: bool = False
    timestamp: float = field(default_factory=time.time)


def new_batch_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class Batch:
    """
    Files observed arriving in one folder during one upload episode.

    Only the BatchRegistry creates and mutates these; everyone else sees
    BatchView copies.
    """
    folder: str
    id: str = field(default_factory=new_batch_id)
    files: List[str] = field(default_factory=list)
    file_sizes: Dict[str, int] = field(default_factory=dict)
    total_size: int = 0
    status: BatchStatus = BatchStatus.UPLOADING
    start_time: float = field(default_factory=time.time)
    last_activity_time: float = field(default_factory=time.time)
    completed_at: Optional[float] = None
    signed_at: Optional[float] = None

    def record(self, file_name: str, size: int) -> None:
        """Add a file observation; sizes only ever grow."""
        if file_name not in self.file_sizes:
            self.files.append(file_name)
            self.file_sizes[file_name] = 0

        previous = self.file_sizes[file_name]
        if size > previous:
            self.total_size += size - previous
            self.file_sizes[file_name] = size

    def view(self) -> "BatchView":
        return BatchView(
            id=self.id,
            folder=self.folder,
            files=tuple(self.files),
            file_sizes=dict(self.file_sizes),
            total_size=self.total_size,
            status=self.status,
            start_time=self.start_time,
            last_activity_time=self.last_activity_time,
            completed_at=self.completed_at,
            signed_at=self.signed_at,
        )


@dataclass(frozen=True)
class BatchView:
    """
    Read-only copy of a batch for presentation and persistence.

    Attributes:
        id: Unique batch identifier
        folder: Absolute path of the folder the files landed in
        files: File names in arrival order
        file_sizes: Last observed size per file name
        total_size: Sum of file sizes in bytes
        status: Lifecycle state at the time of the copy
        start_time: Unix timestamp of batch creation
        last_activity_time: Unix timestamp of the last accepted event
        completed_at: Unix timestamp of the completion promotion
        signed_at: Unix timestamp of the sign action
    """
    id: str
    folder: str
    files: Tuple[str, ...]
    file_sizes: Dict[str, int]
    total_size: int
    status: BatchStatus
    start_time: float
    last_activity_time: float
    completed_at: Optional[float] = None
    signed_at: Optional[float] = None

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def folder_name(self) -> str:
        return Path(self.folder).name or self.folder

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "folder": self.folder,
            "files": list(self.files),
            "file_sizes": dict(self.file_sizes),
            "total_size": self.total_size,
            "status": self.status.value,
            "start_time": self.start_time,
            "last_activity_time": self.last_activity_time,
            "completed_at": self.completed_at,
            "signed_at": self.signed_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BatchView":
        """Create from dictionary."""
        start_time = data.get("start_time", time.time())
        return cls(
            id=data["id"],
            folder=data["folder"],
            files=tuple(data.get("files", [])),
            file_sizes={k: int(v) for k, v in data.get("file_sizes", {}).items()},
            total_size=int(data.get("total_size", 0)),
            status=BatchStatus(data.get("status", BatchStatus.COMPLETED.value)),
            start_time=start_time,
            last_activity_time=data.get("last_activity_time", start_time),
            completed_at=data.get("completed_at"),
            signed_at=data.get("signed_at"),
        )


_SIZE_UNITS = "KMGTPE"


def format_size(num_bytes: int) -> str:
    """
    Format a byte count for display.

    Uses base-1024 units with one decimal place once the value reaches
    1024 bytes, e.g. ``1536 -> "1.5 KB"``.

    Args:
        num_bytes: Size in bytes

    Returns:
        Human-readable size string
    """
    unit = 1024
    if num_bytes < unit:
        return f"{num_bytes} B"

    div, exp = unit, 0
    n = num_bytes // unit
    while n >= unit and exp < len(_SIZE_UNITS) - 1:
        div *= unit
        exp += 1
        n //= unit
    return f"{num_bytes / div:.1f} {_SIZE_UNITS[exp]}B"
