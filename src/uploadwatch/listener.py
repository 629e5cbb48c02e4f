"""Observer interface through which the engine reports batch activity."""

import logging
from typing import List

from .models import BatchStatus, BatchView, format_size

logger = logging.getLogger(__name__)


class BatchListener:
    """
    Receives notifications from a WatchEngine.

    Presentation layers subclass this and override what they need; every
    method defaults to doing nothing. Methods are called from the engine's
    background threads, never while the registry lock is held.
    """

    def on_new_batch_started(self, folder: str, first_file_name: str) -> None:
        """Called once when the first file of a new batch is seen."""
        pass

    def on_batch_completed(self, folder: str, file_count: int, total_size: int) -> None:
        """Called once when a batch is promoted to COMPLETED."""
        pass

    def on_state_changed(self, batches: List[BatchView]) -> None:
        """Called with a fresh snapshot after a burst of changes."""
        pass


class LoggingListener(BatchListener):
    """Listener that reports batch activity through logging."""

    def __init__(self, name: str = "uploadwatch"):
        self.logger = logging.getLogger(name)

    def on_new_batch_started(self, folder: str, first_file_name: str) -> None:
        self.logger.info(f"Upload started in {folder}: {first_file_name}")

    def on_batch_completed(self, folder: str, file_count: int, total_size: int) -> None:
        self.logger.info(
            f"Upload completed in {folder}: {file_count} file(s), {format_size(total_size)}"
        )

    def on_state_changed(self, batches: List[BatchView]) -> None:
        uploading = sum(1 for b in batches if b.status == BatchStatus.UPLOADING)
        self.logger.debug(f"{len(batches)} batch(es), {uploading} uploading")
