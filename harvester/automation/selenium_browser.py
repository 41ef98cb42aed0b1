"""
SeleniumBase implementation of the page automation interface.
Uses UC mode Chrome; each browsing context is a separate tab.
"""

import sys
import os
import threading
from typing import List

from bs4 import BeautifulSoup
from seleniumbase import Driver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from harvester.automation.base import BrowserHandle, PageElement, PageSession
from harvester.errors import AutomationFault, SelectorTimeout
from harvester.log import log


class SeleniumSession(PageSession):
    """A browser tab driven through the shared driver of one worker."""

    def __init__(self, browser: "SeleniumBrowser", window_handle: str):
        self.browser = browser
        self.window_handle = window_handle
        self._closed = False

    @property
    def driver(self):
        driver = self.browser.driver
        if driver is None:
            raise AutomationFault("Browser is not running")
        return driver

    def _focus(self):
        if self.driver.current_window_handle != self.window_handle:
            self.driver.switch_to.window(self.window_handle)

    def navigate(self, url: str, timeout: float):
        try:
            self._focus()
            self.driver.set_page_load_timeout(timeout)
            self.driver.get(url)
        except TimeoutException as e:
            raise AutomationFault(f"Navigation to {url} timed out") from e
        except WebDriverException as e:
            raise AutomationFault(f"Navigation to {url} failed: {e.msg}") from e

    def wait_for_selector(self, selector: str, timeout: float):
        try:
            self._focus()
            WebDriverWait(self.driver, timeout).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, selector))
            )
        except TimeoutException as e:
            raise SelectorTimeout(f"Selector {selector!r} not found within {timeout}s") from e
        except WebDriverException as e:
            raise AutomationFault(f"Waiting for {selector!r} failed: {e.msg}") from e

    def _soup(self) -> BeautifulSoup:
        try:
            self._focus()
            return BeautifulSoup(self.driver.page_source, 'html.parser')
        except WebDriverException as e:
            raise AutomationFault(f"Could not read page source: {e.msg}") from e

    def list_elements(self, selector: str) -> List[PageElement]:
        elements = []
        for elem in self._soup().select(selector):
            elements.append(PageElement(id=elem.get('id', ''), text=elem.get_text(strip=True)))
        return elements

    def click(self, element_id: str):
        try:
            self._focus()
            self.driver.find_element(By.ID, element_id).click()
        except WebDriverException as e:
            raise AutomationFault(f"Could not click #{element_id}: {e.msg}") from e

    def read_frame_sources(self) -> List[str]:
        return [frame['src'] for frame in self._soup().find_all('iframe', src=True) if frame['src']]

    def close(self):
        if self._closed:
            return
        self._closed = True
        driver = self.browser.driver
        if driver is None:
            return
        try:
            driver.switch_to.window(self.window_handle)
            driver.close()
            remaining = driver.window_handles
            if remaining:
                driver.switch_to.window(remaining[0])
        except WebDriverException as e:
            log("Browser", f"Could not close tab: {e.msg}")


class SeleniumBrowser(BrowserHandle):
    """Lazily started SeleniumBase driver owned by one worker."""

    def __init__(self, headless: bool = True):
        self.headless = headless
        self.driver = None
        self._lock = threading.Lock()

    def _init_driver(self):
        """Initialize SeleniumBase Driver with UC mode"""
        log("Browser", "Launching browser...")
        if sys.platform.startswith('linux'):
            # Disable snap connections on Linux
            os.environ['SNAP_NAME'] = ''
            os.environ['SNAP'] = ''
            os.environ['SNAP_INSTANCE_NAME'] = ''
        try:
            self.driver = Driver(uc=True, headless=self.headless)
            self.driver.set_window_size(1280, 720)
        except WebDriverException as e:
            self.driver = None
            raise AutomationFault(f"Browser launch failed: {e.msg}") from e
        log("Browser", "Browser launched.")

    def acquire(self) -> "SeleniumBrowser":
        with self._lock:
            if self.driver is None:
                self._init_driver()
        return self

    def release(self):
        with self._lock:
            driver, self.driver = self.driver, None
        if driver is None:
            return
        log("Browser", "Closing browser...")
        try:
            driver.quit()
        except WebDriverException as e:
            log("Browser", f"Error closing browser: {e.msg}")
        log("Browser", "Browser closed.")

    def open_session(self) -> SeleniumSession:
        self.acquire()
        try:
            self.driver.switch_to.new_window('tab')
            return SeleniumSession(self, self.driver.current_window_handle)
        except (WebDriverException, AttributeError) as e:
            raise AutomationFault(f"Could not open browsing context: {e}") from e
