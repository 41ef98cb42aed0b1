"""
Worker supervisor.

Owns the collection of running workers and their live state. Workers never
touch shared state directly: they post messages into the supervisor's inbox
and a single dispatcher thread applies them, then broadcasts the merged
state to observers.
"""

import queue
import threading
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from harvester.automation.base import BrowserHandle
from harvester.config import HarvesterConfig
from harvester.job_client import JobClient
from harvester.log import log
from harvester.messages import ExitMessage, RemoveMessage, StatusMessage, SubmitMessage
from harvester.models import WorkerState
from harvester.resilience import RetryHandler
from harvester.submission import SubmissionQueue
from harvester.worker import HarvestWorker, manual_job


Observer = Callable[[dict], None]

_SHUTDOWN = object()


def _default_browser_factory(config: HarvesterConfig) -> BrowserHandle:
    from harvester.automation.selenium_browser import SeleniumBrowser
    return SeleniumBrowser(headless=config.headless)


class WorkerSupervisor:
    """Dispatches harvest workers and relays their status to observers."""

    def __init__(
        self,
        config: Optional[HarvesterConfig] = None,
        api_url: Optional[str] = None,
        browser_factory: Optional[Callable[[HarvesterConfig], BrowserHandle]] = None,
        client_factory: Optional[Callable[[str], JobClient]] = None
    ):
        self.config = config or HarvesterConfig()
        self.browser_factory = browser_factory or _default_browser_factory
        self.client_factory = client_factory or (
            lambda url: JobClient(url, timeout=self.config.worker.request_timeout)
        )
        self.api_url: Optional[str] = None
        self.submissions: Optional[SubmissionQueue] = None

        self._inbox: queue.Queue = queue.Queue()
        self._states: Dict[str, WorkerState] = {}
        self._workers: Dict[str, HarvestWorker] = {}
        self._logs: Dict[str, List[str]] = {}
        self._observers: List[Observer] = []
        self._lock = threading.RLock()
        self._dispatcher: Optional[threading.Thread] = None

        if api_url:
            self.set_api_url(api_url)

    # ==================== LIFECYCLE ====================

    def start(self) -> "WorkerSupervisor":
        """Start the dispatcher thread that applies worker messages."""
        if self._dispatcher is None or not self._dispatcher.is_alive():
            self._dispatcher = threading.Thread(
                target=self._dispatch_loop, name="supervisor", daemon=True
            )
            self._dispatcher.start()
        return self

    def shutdown(self):
        """Stop all workers, flush pending submissions and end the dispatcher."""
        self.stop_all()
        self._inbox.put(_SHUTDOWN)
        if self._dispatcher is not None:
            self._dispatcher.join(self.config.worker.stop_grace)
            self._dispatcher = None
        if self.submissions is not None and len(self.submissions):
            log("Supervisor", f"Submitting {len(self.submissions)} pending results...")
            self.submissions.drain()
        if self.submissions is not None:
            self.submissions.client.close()

    def _dispatch_loop(self):
        while True:
            message = self._inbox.get()
            if message is _SHUTDOWN:
                return
            try:
                self.handle_message(message)
            except Exception as e:
                log("Supervisor", f"Error handling {type(message).__name__}: {e}")

    def handle_message(self, message):
        """Apply one worker message. Called only from the dispatcher thread."""
        if isinstance(message, StatusMessage):
            if self._is_current(message.worker_id, message.token):
                self.apply_status(message.worker_id, message.fields)
        elif isinstance(message, SubmitMessage):
            self._enqueue_submission(message)
        elif isinstance(message, ExitMessage):
            self.on_exit(message.worker_id, message.exit_code, message.token)
        elif isinstance(message, RemoveMessage):
            self._remove(message.worker_id)

    # ==================== CONFIGURATION ====================

    def set_api_url(self, url: str):
        """Point workers and the submission queue at a job backend."""
        if not url:
            raise ValueError("API URL must not be empty")
        log("Supervisor", f"API URL has been set to: {url}")
        with self._lock:
            self.api_url = url
            if self.submissions is None:
                retry = RetryHandler(self.config.retry)
                self.submissions = SubmissionQueue(self.client_factory(url), retry)
            else:
                self.submissions.client.set_base_url(url)
            for worker in self._workers.values():
                worker.job_client.set_base_url(url)

    def _require_api_url(self):
        if not self.api_url:
            raise ValueError("API manager URL is not set")

    # ==================== DISPATCH ====================

    def _new_worker(self, worker_id: str, anime_title: str) -> HarvestWorker:
        worker = HarvestWorker(
            worker_id,
            self._inbox,
            self.browser_factory(self.config),
            self.client_factory(self.api_url),
            self.config
        )
        state = WorkerState(id=worker_id, anime_title=anime_title, progress_line='Initializing...')
        with self._lock:
            self._workers[worker_id] = worker
            self._states[worker_id] = state
            self._logs[worker_id] = [self._log_line(worker_id, "Worker started.")]
            self._publish({'type': 'started', 'worker_id': worker_id})
            self._publish({'type': 'status', 'state': state.to_dict()})
        return worker

    def dispatch_manual(self, link: str, anime_id) -> str:
        """
        Start a worker for one operator-supplied anime link.

        Returns:
            The new worker id

        Raises:
            ValueError: if no API URL is configured
            MalformedInput: if the link or id can't be parsed
        """
        self._require_api_url()
        job = manual_job(link, anime_id)
        worker_id = f"manual-{int(time.time() * 1000)}"
        while worker_id in self._workers:
            worker_id += "-1"
        worker = self._new_worker(worker_id, job.title)
        worker.start_manual(job)
        return worker_id

    def dispatch_automatic(self, worker_count: int) -> List[str]:
        """
        Start automatic workers auto-1..auto-N, skipping ids already running.

        Worker starts are staggered by config.worker.start_stagger.

        Returns:
            Ids of the workers started by this call
        """
        self._require_api_url()
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        started = []
        for i in range(1, worker_count + 1):
            worker_id = f"auto-{i}"
            if worker_id in self._workers:
                continue
            worker = self._new_worker(worker_id, 'Waiting for job...')
            worker.start_automatic(delay=len(started) * self.config.worker.start_stagger)
            started.append(worker_id)
        return started

    # ==================== STATE ====================

    def apply_status(self, worker_id: str, partial: dict) -> WorkerState:
        """Merge a partial update into the worker's state and publish it."""
        with self._lock:
            current = self._states.get(worker_id) or WorkerState(id=worker_id)
            merged = current.merge(partial)
            self._states[worker_id] = merged
            if partial.get('progress_line'):
                self._logs.setdefault(worker_id, []).append(
                    self._log_line(worker_id, partial['progress_line'])
                )
            self._publish({'type': 'status', 'state': merged.to_dict()})
            return merged

    def _is_current(self, worker_id: str, token: int) -> bool:
        """True if the message comes from the registered instance of worker_id."""
        with self._lock:
            worker = self._workers.get(worker_id)
            return worker is not None and worker.token == token

    def on_exit(self, worker_id: str, exit_code: int, token: Optional[int] = None):
        """
        Publish the final status line, then drop the state after a grace delay.

        An exit carrying the token of an earlier instance of a reused id is
        ignored.
        """
        with self._lock:
            worker = self._workers.get(worker_id)
            if worker is not None and token is not None and worker.token != token:
                log("Supervisor", f"Ignoring exit of a previous {worker_id} instance.")
                return
            log("Supervisor", f"Worker {worker_id} has exited with code {exit_code}.")
            self._workers.pop(worker_id, None)
            if worker_id not in self._states:
                return
            self.apply_status(worker_id, {'progress_line': f"Exited (code {exit_code})."})

        grace = self.config.worker.exit_grace
        if grace > 0:
            timer = threading.Timer(grace, self._inbox.put, args=(RemoveMessage(worker_id),))
            timer.daemon = True
            timer.start()
        else:
            self._inbox.put(RemoveMessage(worker_id))

    def _remove(self, worker_id: str):
        with self._lock:
            if worker_id in self._workers or self._states.pop(worker_id, None) is None:
                return
            self._logs.pop(worker_id, None)
            self._publish({'type': 'stopped', 'worker_id': worker_id})

    def stop_all(self):
        """Stop every worker, clear all state and publish a terminal event."""
        with self._lock:
            workers = list(self._workers.values())
            self._workers.clear()

        for worker in workers:
            worker.stop()
        deadline = time.monotonic() + self.config.worker.stop_grace
        for worker in workers:
            worker.join(max(0.0, deadline - time.monotonic()))
            if worker.alive:
                log("Supervisor", f"Worker {worker.worker_id} did not exit within grace period.")

        with self._lock:
            self._states.clear()
            self._logs.clear()
            self._publish({'type': 'all_stopped'})

    # ==================== OBSERVATION ====================

    def subscribe(self, observer: Observer) -> Tuple[List[dict], Callable[[], None]]:
        """
        Register an observer for incremental events.

        Returns:
            (snapshot of all active workers, unsubscribe function); no event
            can slip between the snapshot and the first delivered event
        """
        with self._lock:
            snapshot = self.snapshot()
            self._observers.append(observer)

        def unsubscribe():
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return snapshot, unsubscribe

    def snapshot(self) -> List[dict]:
        with self._lock:
            return [state.to_dict() for state in self._states.values()]

    def get_state(self, worker_id: str) -> Optional[WorkerState]:
        with self._lock:
            return self._states.get(worker_id)

    def worker_log(self, worker_id: str) -> Optional[str]:
        with self._lock:
            lines = self._logs.get(worker_id)
            return "".join(lines) if lines is not None else None

    @property
    def active_workers(self) -> List[str]:
        with self._lock:
            return list(self._workers.keys())

    def _publish(self, event: dict):
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as e:
                log("Supervisor", f"Observer failed: {e}")

    @staticmethod
    def _log_line(worker_id: str, message: str) -> str:
        return f"[{datetime.now().isoformat()}] [{worker_id}] {message}\n"

    # ==================== SUBMISSION ====================

    def _enqueue_submission(self, message: SubmitMessage):
        if self.submissions is None:
            log("Supervisor", f"Dropping result from {message.worker_id}: API URL is not set")
            return
        self.submissions.enqueue(message.item)
        self.submissions.kick()
