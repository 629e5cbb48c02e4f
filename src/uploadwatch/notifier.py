"""Coalesced refresh signal for the presentation layer."""

import logging
import queue
import threading
from typing import Callable, List

from .models import BatchView

logger = logging.getLogger(__name__)


class UpdateNotifier:
    """
    Capacity-one refresh signal with a single draining thread.

    Any number of request() calls made while a refresh is pending collapse
    into that one refresh. The drainer always renders a snapshot taken after
    it picked up the signal, so the last change is never lost.
    """

    def __init__(
        self,
        snapshot: Callable[[], List[BatchView]],
        render: Callable[[List[BatchView]], None],
        poll_interval: float = 0.2,
    ):
        """
        Initialize the notifier.

        Args:
            snapshot: Returns the current batch list
            render: Receives each snapshot
            poll_interval: How often the drainer checks for cancellation
        """
        self.snapshot = snapshot
        self.render = render
        self.poll_interval = poll_interval
        self._signal: "queue.Queue[None]" = queue.Queue(maxsize=1)

    def request(self) -> bool:
        """
        Ask for a refresh without blocking.

        Returns:
            True if a new refresh was queued, False if one was already pending
        """
        try:
            self._signal.put_nowait(None)
            return True
        except queue.Full:
            return False

    @property
    def pending(self) -> bool:
        return not self._signal.empty()

    def drain_once(self, timeout: float = 0.0) -> bool:
        """
        Handle one pending refresh, if any.

        Args:
            timeout: Seconds to wait for a signal

        Returns:
            True if a refresh was rendered
        """
        try:
            if timeout > 0:
                self._signal.get(timeout=timeout)
            else:
                self._signal.get_nowait()
        except queue.Empty:
            return False

        try:
            self.render(self.snapshot())
        except Exception as e:
            logger.error(f"Refresh callback failed: {e}")
        return True

    def run(self, stop_event: threading.Event) -> None:
        """Drain refresh signals until ``stop_event`` is set."""
        logger.debug("Update notifier started")
        while not stop_event.is_set():
            self.drain_once(timeout=self.poll_interval)
        logger.debug("Update notifier stopped")
