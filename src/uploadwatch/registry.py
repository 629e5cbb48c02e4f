"""Thread-safe store of upload batches and the folder correlation logic."""

import logging
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .models import Batch, BatchStatus, BatchView

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """
    Lock allowing many concurrent readers or one writer.

    Writers are preferred: once a writer is waiting, new readers block
    until it has finished.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def stat_size(path: Path) -> int:
    """Best-effort size lookup; missing or unreadable files count as 0."""
    try:
        return os.stat(path).st_size
    except OSError:
        return 0


class BatchRegistry:
    """
    Concurrent store of in-flight and historical batches.

    Batches are correlated by folder: every accepted file lands in the one
    UPLOADING batch for its parent folder, or starts a new one.
    """

    def __init__(
        self,
        case_insensitive: bool = False,
        max_history: int = 100,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the registry.

        Args:
            case_insensitive: Fold case when comparing folders
            max_history: Maximum number of finished batches to keep
            clock: Source of Unix timestamps
        """
        self.case_insensitive = case_insensitive
        self.max_history = max_history
        self._clock = clock
        self._batches: Dict[str, Batch] = {}
        self._lock = ReadWriteLock()

    def _folder_key(self, folder: str) -> str:
        folder = os.path.normpath(folder)
        if self.case_insensitive:
            return folder.lower()
        return folder

    @staticmethod
    def split_path(path: Union[str, Path]) -> Tuple[str, str]:
        """Split a file path into its parent folder and base name."""
        path = Path(os.path.normpath(str(path)))
        return str(path.parent), path.name

    def add_file(self, path: Union[str, Path], size: Optional[int] = None) -> bool:
        """
        Record a file observation.

        Args:
            path: Path of the accepted file
            size: Observed size; looked up with a stat call when omitted

        Returns:
            True if this observation started a new batch
        """
        folder, file_name = self.split_path(path)
        if size is None:
            size = stat_size(Path(path))
        key = self._folder_key(folder)
        is_new_batch = False

        with self._lock.write():
            now = self._clock()
            batch = None
            for candidate in self._batches.values():
                if (
                    candidate.status == BatchStatus.UPLOADING
                    and self._folder_key(candidate.folder) == key
                ):
                    batch = candidate
                    break

            if batch is None:
                batch = Batch(folder=folder, start_time=now, last_activity_time=now)
                self._batches[batch.id] = batch
                is_new_batch = True
                self._trim_history()

            batch.record(file_name, size)
            batch.last_activity_time = now

        if is_new_batch:
            logger.debug(f"New batch {batch.id} for {folder}")
        return is_new_batch

    def promote_stale(self, timeout: float) -> List[BatchView]:
        """
        Mark UPLOADING batches idle for longer than ``timeout`` as COMPLETED.

        Args:
            timeout: Inactivity threshold in seconds

        Returns:
            Views of the batches promoted by this call
        """
        promoted = []
        with self._lock.write():
            now = self._clock()
            for batch in self._batches.values():
                if batch.status != BatchStatus.UPLOADING:
                    continue
                if now - batch.last_activity_time > timeout:
                    batch.status = BatchStatus.COMPLETED
                    batch.completed_at = now
                    promoted.append(batch.view())
        return promoted

    def sign_batch(self, batch_id: str) -> bool:
        """
        Sign a completed batch.

        Args:
            batch_id: Identifier of the batch

        Returns:
            True if the batch was COMPLETED and is now SIGNED
        """
        with self._lock.write():
            batch = self._batches.get(batch_id)
            if batch is None or batch.status != BatchStatus.COMPLETED:
                return False
            batch.status = BatchStatus.SIGNED
            batch.signed_at = self._clock()
            return True

    def sign_all(self) -> int:
        """
        Sign every completed batch.

        Returns:
            Number of batches signed
        """
        with self._lock.write():
            now = self._clock()
            count = 0
            for batch in self._batches.values():
                if batch.status == BatchStatus.COMPLETED:
                    batch.status = BatchStatus.SIGNED
                    batch.signed_at = now
                    count += 1
            return count

    def clear_signed(self) -> int:
        """
        Remove every signed batch.

        Returns:
            Number of batches removed
        """
        with self._lock.write():
            signed = [
                batch_id for batch_id, batch in self._batches.items()
                if batch.status == BatchStatus.SIGNED
            ]
            for batch_id in signed:
                del self._batches[batch_id]
            return len(signed)

    def clear_all(self) -> int:
        """
        Remove every batch regardless of status.

        Returns:
            Number of batches removed
        """
        with self._lock.write():
            count = len(self._batches)
            self._batches.clear()
            return count

    def snapshot(self) -> List[BatchView]:
        """
        Get read-only copies of all batches, newest first.

        Returns:
            Batch views sorted by start time descending
        """
        with self._lock.read():
            views = [batch.view() for batch in self._batches.values()]
        views.sort(key=lambda v: v.start_time, reverse=True)
        return views

    def get(self, batch_id: str) -> Optional[BatchView]:
        with self._lock.read():
            batch = self._batches.get(batch_id)
            return batch.view() if batch else None

    def counts(self) -> Dict[str, int]:
        """Count uploading and unsigned (completed) batches."""
        with self._lock.read():
            uploading = sum(1 for b in self._batches.values() if b.status == BatchStatus.UPLOADING)
            unsigned = sum(1 for b in self._batches.values() if b.status == BatchStatus.COMPLETED)
        return {"uploading": uploading, "unsigned": unsigned}

    def restore(self, views: Iterable[BatchView]) -> int:
        """
        Load batches from persisted history.

        A stored UPLOADING batch belongs to a session that no longer exists,
        so it comes back as COMPLETED.

        Args:
            views: Previously persisted batch views

        Returns:
            Number of batches restored
        """
        count = 0
        with self._lock.write():
            for view in views:
                if view.id in self._batches:
                    continue
                status = view.status
                completed_at = view.completed_at
                if status == BatchStatus.UPLOADING:
                    status = BatchStatus.COMPLETED
                    completed_at = view.last_activity_time
                self._batches[view.id] = Batch(
                    folder=view.folder,
                    id=view.id,
                    files=list(view.files),
                    file_sizes=dict(view.file_sizes),
                    total_size=view.total_size,
                    status=status,
                    start_time=view.start_time,
                    last_activity_time=view.last_activity_time,
                    completed_at=completed_at,
                    signed_at=view.signed_at,
                )
                count += 1
            self._trim_history()
        return count

    def _trim_history(self) -> None:
        """Drop the oldest finished batches beyond ``max_history``. Caller holds the write lock."""
        finished = [
            b for b in self._batches.values() if b.status != BatchStatus.UPLOADING
        ]
        excess = len(self._batches) - self.max_history
        if excess <= 0 or not finished:
            return
        finished.sort(key=lambda b: b.start_time)
        for batch in finished[:excess]:
            del self._batches[batch.id]

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._batches)
