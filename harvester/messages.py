"""
Typed messages sent from worker threads to the supervisor.
"""

import queue
from dataclasses import dataclass, field
from typing import Optional

from harvester.log import log
from harvester.models import SubmissionItem


@dataclass
class StatusMessage:
    """Partial WorkerState update."""
    worker_id: str
    fields: dict = field(default_factory=dict)
    token: int = 0


@dataclass
class SubmitMessage:
    """Harvested episode to be queued for submission."""
    worker_id: str
    item: SubmissionItem
    token: int = 0


@dataclass
class ExitMessage:
    """Worker finished with the given exit code."""
    worker_id: str
    exit_code: int
    token: int = 0


@dataclass
class RemoveMessage:
    """Drop a worker's state once its exit grace period is over."""
    worker_id: str


class StatusChannel:
    """
    Outbound message channel of one worker.

    Every status update carries the worker's current processed count and
    echoes its progress line to the console. Messages are stamped with the
    token of the worker instance, since worker ids are reused.
    """

    def __init__(self, worker_id: str, outbox: Optional[queue.Queue] = None, token: int = 0):
        self.worker_id = worker_id
        self.outbox = outbox
        self.token = token
        self.processed_count = 0

    def _put(self, message):
        if self.outbox is not None:
            self.outbox.put(message)

    def status(self, **fields):
        if fields.get('progress_line'):
            log(self.worker_id, fields['progress_line'])
        fields.setdefault('processed_count', self.processed_count)
        self._put(StatusMessage(self.worker_id, fields, self.token))

    def submit(self, item: SubmissionItem):
        self._put(SubmitMessage(self.worker_id, item, self.token))

    def exit(self, exit_code: int):
        self._put(ExitMessage(self.worker_id, exit_code, self.token))
