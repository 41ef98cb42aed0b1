"""
Serialized submission of harvested episodes.

Any number of workers may enqueue concurrently; only one drain runs at a
time and it forwards items to the job backend in enqueue order.
"""

import threading
from collections import deque
from typing import Deque, List, Optional

from harvester.job_client import JobClient
from harvester.log import log
from harvester.models import SubmissionItem
from harvester.resilience import RetryHandler


class SubmissionQueue:
    """FIFO queue in front of JobClient.submit_result with a single consumer."""

    def __init__(self, client: JobClient, retry_handler: Optional[RetryHandler] = None):
        self.client = client
        self.retry_handler = retry_handler or RetryHandler()
        self._items: Deque[SubmissionItem] = deque()
        self._items_lock = threading.Lock()
        self._drain_lock = threading.Lock()
        self.forwarded = 0
        self.failed: List[SubmissionItem] = []

    def enqueue(self, item: SubmissionItem):
        with self._items_lock:
            self._items.append(item)

    def __len__(self) -> int:
        with self._items_lock:
            return len(self._items)

    def _pop(self) -> Optional[SubmissionItem]:
        with self._items_lock:
            return self._items.popleft() if self._items else None

    @property
    def draining(self) -> bool:
        return self._drain_lock.locked()

    def kick(self) -> Optional[threading.Thread]:
        """Start a background drain unless one is already running."""
        if self.draining:
            return None
        thread = threading.Thread(target=self.drain, name="submission-drain", daemon=True)
        thread.start()
        return thread

    def drain(self) -> int:
        """
        Forward queued items until the queue is empty.

        Returns immediately if another drain is in progress.

        Returns:
            Number of items this call handled
        """
        handled = 0
        while True:
            if not self._drain_lock.acquire(blocking=False):
                return handled
            try:
                item = self._pop()
                while item is not None:
                    self._forward(item)
                    handled += 1
                    item = self._pop()
            finally:
                self._drain_lock.release()
            # An enqueue may have landed between the last pop and the release
            if not len(self):
                return handled

    def _forward(self, item: SubmissionItem):
        log("Queue", f"Processing submit for: MAL ID {item.anime_id} Ep {item.episode_number}")
        success, result = self.retry_handler.execute_with_retry(
            self.client.submit_result, item.anime_id, item.episode_number, item.sources
        )
        if success:
            self.forwarded += 1
            return
        self.failed.append(item)
        self.retry_handler.record_permanent_failure(
            f"{item.anime_id}:{item.episode_number}", str(result)
        )

    def get_stats(self) -> dict:
        """Queue counters plus the retry handler's statistics."""
        return {
            'pending': len(self),
            'forwarded': self.forwarded,
            'failed': len(self.failed),
            'retry': self.retry_handler.get_stats(),
        }
