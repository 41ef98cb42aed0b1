"""
Episode discovery loop.

Probes episodes of one anime strictly in order, trying each known URL
layout per episode, until an episode is not found, a fault occurs, the
upper bound is reached or the worker is stopped.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from harvester.config import DiscoveryConfig
from harvester.errors import AutomationFault
from harvester.extractor import EpisodeExtractor
from harvester.log import log
from harvester.messages import StatusChannel
from harvester.models import EpisodeJob, EpisodeResult
from harvester.urls import episode_urls


class LoopState(Enum):
    PROBING = "probing"
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    ABORTED = "aborted"
    COMPLETED = "completed"


TERMINAL_STATES = (LoopState.NOT_FOUND, LoopState.ABORTED, LoopState.COMPLETED)


@dataclass
class HarvestOutcome:
    """Terminal result of one anime's discovery loop."""
    state: LoopState
    episodes_harvested: int = 0
    last_episode: Optional[int] = None
    error: Optional[str] = None

    @property
    def clean(self) -> bool:
        return self.state in (LoopState.NOT_FOUND, LoopState.COMPLETED)


class HarvestRun:
    """
    Iterable over the successfully harvested episodes of one job.

    The outcome is available once iteration has finished.
    """

    def __init__(self, harvester: "EpisodeHarvester", job: EpisodeJob):
        self.harvester = harvester
        self.job = job
        self.state = LoopState.PROBING
        self.episode = job.start_episode
        self.episodes_harvested = 0
        self.last_episode: Optional[int] = None
        self.outcome: Optional[HarvestOutcome] = None

    @property
    def upper_bound(self) -> int:
        """Last episode that may be probed (0 = unbounded)."""
        bounds = []
        if self.job.end_episode:
            bounds.append(self.job.end_episode)
        if self.harvester.config.max_episodes:
            bounds.append(self.job.start_episode + self.harvester.config.max_episodes - 1)
        return min(bounds) if bounds else 0

    def _finish(self, state: LoopState, error: Optional[str] = None) -> HarvestOutcome:
        self.state = state
        self.outcome = HarvestOutcome(
            state=state,
            episodes_harvested=self.episodes_harvested,
            last_episode=self.last_episode,
            error=error
        )
        return self.outcome

    def __iter__(self) -> Iterator[EpisodeResult]:
        harvester = self.harvester
        channel = harvester.channel
        last = self.upper_bound

        while True:
            if harvester.stop_event.is_set():
                self._finish(LoopState.ABORTED, error="stopped")
                return
            if last and self.episode > last:
                self._finish(LoopState.COMPLETED)
                return

            self.state = LoopState.PROBING
            channel.status(episode=self.episode, progress_line=f"Trying patterns for Ep {self.episode}...")

            try:
                result = harvester.probe(self.job, self.episode)
            except AutomationFault as e:
                log(channel.worker_id, f"Automation fault on Ep {self.episode}: {e}")
                channel.status(progress_line=f"Ep {self.episode} aborted: {e}")
                self._finish(LoopState.ABORTED, error=str(e))
                return
            except Exception as e:
                log(channel.worker_id, f"Unexpected error on Ep {self.episode}: {type(e).__name__}: {e}")
                channel.status(progress_line=f"Ep {self.episode} aborted: {e}")
                self._finish(LoopState.ABORTED, error=f"{type(e).__name__}: {e}")
                return

            if result is None:
                channel.status(progress_line=f"Ep {self.episode} not found. Finishing job for this anime.")
                self._finish(LoopState.NOT_FOUND)
                return

            self.state = LoopState.SUCCESS
            self.episodes_harvested += 1
            self.last_episode = self.episode
            yield result

            if last and self.episode >= last:
                self._finish(LoopState.COMPLETED)
                return

            self.episode += 1
            if harvester.stop_event.wait(harvester.config.episode_delay):
                self._finish(LoopState.ABORTED, error="stopped")
                return


class EpisodeHarvester:
    """Runs the discovery loop for anime jobs using one extractor."""

    def __init__(
        self,
        extractor: EpisodeExtractor,
        config: Optional[DiscoveryConfig] = None,
        channel: Optional[StatusChannel] = None,
        stop_event: Optional[threading.Event] = None
    ):
        self.extractor = extractor
        self.config = config or DiscoveryConfig()
        self.channel = channel or extractor.channel
        self.stop_event = stop_event or extractor.stop_event

    def harvest(self, job: EpisodeJob) -> HarvestRun:
        return HarvestRun(self, job)

    def probe(self, job: EpisodeJob, episode: int) -> Optional[EpisodeResult]:
        """
        Try every URL layout for one episode.

        Returns:
            EpisodeResult from the first layout with a non-empty selection,
            or None if every layout came up empty
        """
        for episode_url in episode_urls(job.domain, job.slug, episode):
            extraction = self.extractor.extract(episode_url.url, episode)
            if extraction.success and extraction.links:
                self.channel.status(
                    progress_line=f"Ep {episode} Scraped! ({len(extraction.links)} links)."
                )
                return EpisodeResult(
                    anime_id=job.anime_id,
                    episode_number=episode,
                    url=episode_url.url,
                    sources=extraction.links
                )
        return None
