"""
Abstract page automation interface consumed by the extractor.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class PageElement:
    """A matched DOM element: its id and trimmed text."""
    id: str
    text: str


class PageSession(ABC):
    """
    One browsing context (tab) owned by a single worker.

    All operations raise AutomationFault on navigation/browser failure;
    wait_for_selector raises SelectorTimeout when the selector never shows.
    """

    @abstractmethod
    def navigate(self, url: str, timeout: float):
        ...

    @abstractmethod
    def wait_for_selector(self, selector: str, timeout: float):
        ...

    @abstractmethod
    def list_elements(self, selector: str) -> List[PageElement]:
        ...

    @abstractmethod
    def click(self, element_id: str):
        ...

    @abstractmethod
    def read_frame_sources(self) -> List[str]:
        ...

    @abstractmethod
    def close(self):
        ...

    def __enter__(self) -> "PageSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class BrowserHandle(ABC):
    """
    Owned browser resource with an explicit lifecycle.

    acquire() may be called any number of times; the underlying browser is
    started at most once. release() shuts it down. interrupt() is called from
    another thread to make in-flight operations fail fast.
    """

    @abstractmethod
    def acquire(self) -> "BrowserHandle":
        ...

    @abstractmethod
    def release(self):
        ...

    @abstractmethod
    def open_session(self) -> PageSession:
        ...

    def interrupt(self):
        self.release()
