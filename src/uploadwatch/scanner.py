"""Periodic promotion of idle uploading batches to completed."""

import logging
import threading
from typing import Callable, List, Optional

from .config import WatcherConfig
from .models import BatchView
from .registry import BatchRegistry

logger = logging.getLogger(__name__)


class CompletionScanner:
    """
    Sweeps the registry for batches that have gone quiet.

    The timeout is read from the config on every tick so changes apply
    without restarting the session.
    """

    def __init__(
        self,
        registry: BatchRegistry,
        config: WatcherConfig,
        on_completed: Optional[Callable[[BatchView], None]] = None,
        on_tick: Optional[Callable[[List[BatchView]], None]] = None,
    ):
        """
        Initialize the scanner.

        Args:
            registry: Registry to sweep
            config: Live watcher configuration
            on_completed: Called once per promoted batch, outside the lock
            on_tick: Called after every sweep with the promoted batches
        """
        self.registry = registry
        self.config = config
        self.on_completed = on_completed
        self.on_tick = on_tick

    def scan(self) -> List[BatchView]:
        """
        Run one sweep.

        Returns:
            Batches promoted to COMPLETED by this sweep
        """
        timeout = self.config.effective_completion_timeout()
        promoted = self.registry.promote_stale(timeout)

        for view in promoted:
            logger.info(
                f"Batch {view.id} completed: {view.folder} ({view.file_count} files, {view.total_size} bytes)"
            )
            if self.on_completed:
                try:
                    self.on_completed(view)
                except Exception as e:
                    logger.error(f"Completion callback failed for {view.folder}: {e}")

        if self.on_tick:
            self.on_tick(promoted)
        return promoted

    def run(self, stop_event: threading.Event) -> None:
        """Sweep every ``config.scan_interval`` seconds until ``stop_event`` is set."""
        logger.debug(f"Completion scanner started, interval={self.config.scan_interval}s")
        while not stop_event.wait(timeout=self.config.scan_interval):
            try:
                self.scan()
            except Exception as e:
                logger.error(f"Completion scan error: {e}")
        logger.debug("Completion scanner stopped")
