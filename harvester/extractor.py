"""
Per-episode link extraction.
Clicks through an episode page's server options, collects iframe sources
into a LinkPool and runs the selection engine over it.
"""

import threading
from dataclasses import dataclass, field
from typing import List, Optional

from harvester.automation.base import BrowserHandle, PageElement, PageSession
from harvester.config import ExtractorConfig, SelectionConfig
from harvester.errors import AutomationFault, SelectorTimeout
from harvester.links import LinkPool, make_candidate
from harvester.messages import StatusChannel
from harvester.models import CandidateLink
from harvester.selection import Selection, SourceSelector


@dataclass
class ServerOption:
    """A clickable server option on an episode page."""
    id: str
    text: str
    candidate: CandidateLink

    @property
    def server(self) -> str:
        return self.candidate.server


@dataclass
class ExtractionResult:
    """Outcome of extracting one episode URL."""
    success: bool
    links: List[CandidateLink] = field(default_factory=list)
    pool_size: int = 0
    selection: Optional[Selection] = None


class EpisodeExtractor:
    """Extracts and selects video sources for a single episode page."""

    def __init__(
        self,
        browser: BrowserHandle,
        config: Optional[ExtractorConfig] = None,
        selection_config: Optional[SelectionConfig] = None,
        channel: Optional[StatusChannel] = None,
        stop_event: Optional[threading.Event] = None
    ):
        self.browser = browser
        self.config = config or ExtractorConfig()
        self.selector = SourceSelector(selection_config)
        self.channel = channel or StatusChannel("Extractor")
        self.stop_event = stop_event or threading.Event()

    def _report(self, message: str):
        self.channel.status(progress_line=message)

    def extract(self, url: str, episode_number: int) -> ExtractionResult:
        """
        Extract sources from one episode URL.

        Args:
            url: Episode page URL
            episode_number: Episode number (for reporting)

        Returns:
            ExtractionResult; success is False when the page has no server
            options or no usable links

        Raises:
            AutomationFault: on navigation/browser failure
        """
        if self.stop_event.is_set():
            raise AutomationFault("Extraction stopped")

        with self.browser.open_session() as session:
            self._report(f"Navigating to {url[:50]}...")
            session.navigate(url, self.config.navigation_timeout)

            try:
                self._report("Waiting for server selector...")
                session.wait_for_selector(self.config.server_selector, self.config.selector_timeout)
            except SelectorTimeout:
                self._report(f"Episode {episode_number} ({url}) invalid or server buttons not found.")
                return ExtractionResult(success=False)

            options = self._collect_options(session)
            if not options:
                self._report(f"No server options found on page {url}.")
                return ExtractionResult(success=False)

            pool = self._build_pool(session, options)

        selection = self.selector.select(pool)
        self._report(f"Selected primary servers: {', '.join(selection.primary_servers) or 'None'}")
        if selection.best_available:
            self._report("No primary servers found. Using 'best available' mode.")
        for server, quality in selection.unfilled_slots:
            self._report(f"No patch link found for {server} - {quality}. Slot left empty.")

        return ExtractionResult(
            success=bool(selection.links),
            links=selection.links,
            pool_size=len(pool),
            selection=selection
        )

    def _collect_options(self, session: PageSession) -> List[ServerOption]:
        elements: List[PageElement] = session.list_elements(self.config.server_selector)
        options = [
            ServerOption(id=elem.id, text=elem.text, candidate=make_candidate(elem.text, ""))
            for elem in elements
        ]
        # Stable: options of the same server keep page order
        options.sort(key=lambda o: o.candidate.priority)
        return options

    def _build_pool(self, session: PageSession, options: List[ServerOption]) -> LinkPool:
        pool = LinkPool()
        clicked_ids = set()
        clicked_servers = set()
        min_pool_size = self.selector.config.min_pool_size

        self._report(f"Starting link extraction from {len(options)} options...")

        for option in options:
            if len(pool) >= min_pool_size and len(clicked_servers) >= self.config.max_server_clicks:
                self._report(f"Link pool sufficient ({len(pool)} links). Stopping clicks.")
                break
            if self.stop_event.is_set():
                raise AutomationFault("Extraction stopped")
            if not option.id or option.id in clicked_ids:
                continue

            try:
                self._report(f'Clicking option: "{option.text}"')
                session.click(option.id)
                clicked_ids.add(option.id)
                clicked_servers.add(option.server)
                if self.stop_event.wait(self.config.click_settle):
                    raise AutomationFault("Extraction stopped")
                source = self._first_valid_source(session.read_frame_sources())
            except AutomationFault as e:
                if self.stop_event.is_set():
                    raise
                self._report(f'Error processing "{option.text}": {e}')
                continue

            if not source:
                self._report(f'No valid link found for "{option.text}".')
                continue

            candidate = make_candidate(option.text, source)
            if pool.insert(candidate):
                self._report(f"Valid link found: {candidate.server} - {candidate.quality}")
            else:
                self._report(f"Link for {candidate.server} - {candidate.quality} already in pool.")

        pool.freeze()
        self._report(f"Extraction finished. Pool: {len(pool)} links from {len(clicked_servers)} servers.")
        return pool

    def _first_valid_source(self, sources: List[str]) -> Optional[str]:
        for src in sources:
            if src and not any(host in src for host in self.config.blocked_hosts):
                return src
        return None
