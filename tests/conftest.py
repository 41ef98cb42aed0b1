"""Shared fakes for page automation and the job backend."""
import threading
import time
from typing import Dict, List, Optional

import pytest

from harvester.automation.base import BrowserHandle, PageElement, PageSession
from harvester.config import (
    DiscoveryConfig, ExtractorConfig, HarvesterConfig, RetryConfig, WorkerConfig,
)
from harvester.errors import AutomationFault, BackendUnavailable, SelectorTimeout
from harvester.links import LinkPool, make_candidate


DOMAIN = "https://anime.example"
SELECTOR = "div.east_player_option"


def episode_page(*options):
    """Fake page: options are (element_id, label, iframe_src) triples."""
    return {"options": list(options)}


def full_page(episode: int, servers=("Pucuk", "Nakama")):
    options = []
    for server in servers:
        for quality in ("1080p", "720p", "480p"):
            element_id = f"{server.lower()}-{quality}"
            options.append((element_id, f"{server} {quality}", f"https://cdn.example/{server}/{episode}/{quality}"))
    return episode_page(*options)


def build_pool(*entries) -> LinkPool:
    """entries: (label, url) pairs."""
    pool = LinkPool()
    for label, url in entries:
        pool.insert(make_candidate(label, url))
    return pool.freeze()


class FakeSession(PageSession):
    """Browsing context over an in-memory site map."""

    def __init__(self, browser: "FakeBrowser"):
        self.browser = browser
        self.page = None
        self.frames: List[str] = []
        self.closed = False

    def navigate(self, url: str, timeout: float):
        self.browser.visited.append(url)
        if url in self.browser.faulty_urls:
            raise AutomationFault(f"Navigation to {url} failed")
        self.page = self.browser.site.get(url)

    def wait_for_selector(self, selector: str, timeout: float):
        if not self.page:
            raise SelectorTimeout(f"{selector} not found")

    def list_elements(self, selector: str) -> List[PageElement]:
        return [PageElement(id=oid, text=label) for oid, label, _ in self.page["options"]]

    def click(self, element_id: str):
        self.browser.clicks.append(element_id)
        for oid, _, src in self.page["options"]:
            if oid == element_id:
                if src == "raise":
                    raise AutomationFault("click failed")
                self.frames = ["https://www.facebook.com/plugins/like"] + ([src] if src else [])
                return
        raise AutomationFault(f"#{element_id} not found")

    def read_frame_sources(self) -> List[str]:
        return list(self.frames)

    def close(self):
        self.closed = True
        self.browser.closed_sessions += 1


class FakeBrowser(BrowserHandle):
    def __init__(self, site: Optional[Dict[str, dict]] = None, faulty_urls=()):
        self.site = site or {}
        self.faulty_urls = set(faulty_urls)
        self.visited: List[str] = []
        self.clicks: List[str] = []
        self.sessions: List[FakeSession] = []
        self.closed_sessions = 0
        self.acquired = 0
        self.released = 0
        self.interrupted = False

    def acquire(self):
        self.acquired += 1
        return self

    def release(self):
        self.released += 1

    def interrupt(self):
        self.interrupted = True
        self.release()

    def open_session(self) -> FakeSession:
        session = FakeSession(self)
        self.sessions.append(session)
        return session


class FakeJobClient:
    """Job backend double recording submissions."""

    def __init__(self, batches=None, submit_delay: float = 0.0, fail_submit: bool = False):
        self.batches = list(batches or [])
        self.requests: List[str] = []
        self.submitted: List[tuple] = []
        self.submit_delay = submit_delay
        self.fail_submit = fail_submit
        self.base_url = "http://backend.example"
        self._in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()
        self.closed = 0

    def set_base_url(self, url: str):
        self.base_url = url

    def request_job(self, worker_id=None):
        self.requests.append(worker_id)
        if not self.batches:
            return []
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return batch

    def submit_result(self, anime_id, episode_number, sources):
        with self._lock:
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if self.submit_delay:
                time.sleep(self.submit_delay)
            if self.fail_submit:
                raise BackendUnavailable("submit failed")
            self.submitted.append((anime_id, episode_number, list(sources)))
            return True
        finally:
            with self._lock:
                self._in_flight -= 1

    def close(self):
        self.closed += 1


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def fast_config() -> HarvesterConfig:
    return HarvesterConfig(
        extractor=ExtractorConfig(click_settle=0),
        discovery=DiscoveryConfig(episode_delay=0),
        retry=RetryConfig(max_retries=2, base_delay=0),
        worker=WorkerConfig(no_work_interval=0.05, exit_grace=0, stop_grace=2.0, start_stagger=0),
    )
