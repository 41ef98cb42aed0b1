"""
Harvest workers.
Each worker runs on its own thread with its own browser and reports to the
supervisor only through its StatusChannel.
"""

import itertools
import queue
import threading
from typing import Optional

from harvester.automation.base import BrowserHandle
from harvester.config import HarvesterConfig
from harvester.discovery import EpisodeHarvester, LoopState
from harvester.errors import BackendUnavailable, MalformedInput
from harvester.extractor import EpisodeExtractor
from harvester.job_client import JobClient
from harvester.log import log
from harvester.messages import StatusChannel
from harvester.models import AnimeJob, EpisodeJob, SubmissionItem
from harvester.urls import extract_episode_number, parse_base_link


_tokens = itertools.count(1)


def manual_job(link: str, anime_id) -> EpisodeJob:
    """
    Build a job from an operator-supplied link and anime id.

    A link pointing at a specific episode harvests only that episode.

    Raises:
        MalformedInput: if the id is not an integer or the link can't be parsed
    """
    try:
        mal_id = int(str(anime_id).strip())
    except (TypeError, ValueError) as e:
        raise MalformedInput(f"Invalid anime id: {anime_id!r}") from e

    domain, slug = parse_base_link(link)
    start, end = 1, 0
    if '-episode-' in link.lower():
        episode = extract_episode_number(link)
        if episode:
            start = end = episode
    return EpisodeJob(
        anime_id=mal_id,
        title=f"Manual Job for MAL ID {mal_id}",
        domain=domain,
        slug=slug,
        start_episode=start,
        end_episode=end
    )


def anime_job(anime: AnimeJob) -> EpisodeJob:
    """Build a job from a backend batch entry."""
    base_url = anime.base_url
    if not base_url:
        raise MalformedInput(f"{anime.title}: no base link")
    domain, slug = parse_base_link(base_url)
    return EpisodeJob(
        anime_id=anime.mal_id,
        title=anime.title,
        domain=domain,
        slug=slug,
        end_episode=anime.total_episodes or 0
    )


class HarvestWorker:
    """One harvesting worker, in automatic or manual mode."""

    def __init__(
        self,
        worker_id: str,
        outbox: queue.Queue,
        browser: BrowserHandle,
        job_client: JobClient,
        config: Optional[HarvesterConfig] = None
    ):
        self.worker_id = worker_id
        self.browser = browser
        self.job_client = job_client
        self.config = config or HarvesterConfig()
        self.token = next(_tokens)
        self.stop_event = threading.Event()
        self.channel = StatusChannel(worker_id, outbox, self.token)
        self.extractor = EpisodeExtractor(
            browser,
            config=self.config.extractor,
            selection_config=self.config.selection,
            channel=self.channel,
            stop_event=self.stop_event
        )
        self.harvester = EpisodeHarvester(self.extractor, config=self.config.discovery)
        self._thread: Optional[threading.Thread] = None

    # ==================== LIFECYCLE ====================

    def start_automatic(self, delay: float = 0.0) -> "HarvestWorker":
        return self._start(self.run_automatic, delay)

    def start_manual(self, job: EpisodeJob) -> "HarvestWorker":
        return self._start(lambda: self.run_manual(job))

    def _start(self, target, delay: float = 0.0) -> "HarvestWorker":
        self._thread = threading.Thread(
            target=self._run, args=(target, delay), name=self.worker_id, daemon=True
        )
        self._thread.start()
        return self

    def _run(self, target, delay: float):
        exit_code = 0
        try:
            if delay and self.stop_event.wait(delay):
                return
            exit_code = target()
        except Exception as e:
            log(self.worker_id, f"Worker crashed: {type(e).__name__}: {e}")
            self.channel.status(progress_line=f"Fatal error: {e}")
            exit_code = 1
        finally:
            self.browser.release()
            self.job_client.close()
            self.channel.exit(exit_code)

    def stop(self):
        """Signal the worker to stop and abort in-flight browser work."""
        if self.stop_event.is_set():
            return
        log(self.worker_id, "Stop requested. Closing browser...")
        self.stop_event.set()
        self.browser.interrupt()

    def join(self, timeout: Optional[float] = None):
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    # ==================== MODES ====================

    def run_automatic(self) -> int:
        """Pull batches from the backend until stopped."""
        worker_config = self.config.worker

        while not self.stopped:
            try:
                self.channel.status(anime_title='Waiting for job...', progress_line='Requesting new job package...')
                self.browser.acquire()
                jobs = self.job_client.request_job(self.worker_id)

                if not jobs:
                    minutes = worker_config.no_work_interval / 60
                    self.channel.status(progress_line=f"No jobs available. Waiting for {minutes:g} mins.")
                    self.stop_event.wait(worker_config.no_work_interval)
                    continue

                for anime in jobs:
                    if self.stopped:
                        break
                    self._process_anime(anime)
            except Exception as e:
                backoff = worker_config.error_backoff
                log(self.worker_id, f"Error in main loop: {type(e).__name__}: {e}")
                self.channel.status(progress_line=f"An error occurred. Retrying in {backoff:g} seconds.")
                self.stop_event.wait(backoff)

        return 0

    def _process_anime(self, anime: AnimeJob):
        self.channel.processed_count = 0
        self.channel.status(anime_title=anime.title, progress_line=f"Starting job for {anime.title}")

        try:
            job = anime_job(anime)
        except MalformedInput as e:
            self.channel.status(progress_line=f"Skipping {anime.title}: {e}")
            return

        run = self.harvester.harvest(job)
        for result in run:
            self.channel.status(progress_line=f"Ep {result.episode_number} queued for submission.")
            self.channel.submit(SubmissionItem(
                anime_id=result.anime_id,
                episode_number=result.episode_number,
                sources=result.sources
            ))
            self.channel.processed_count += 1

        self._report_outcome(job, run.outcome)

    def run_manual(self, job: EpisodeJob) -> int:
        """Harvest one operator-supplied anime, submitting each episode directly."""
        self.browser.acquire()
        self.channel.status(anime_title=job.title, progress_line='Browser initialized.')
        self.channel.status(progress_line=f"Extracted Slug: {job.slug}")

        run = self.harvester.harvest(job)
        for result in run:
            episode = result.episode_number
            self.channel.status(progress_line=f"Ep {episode}: submitting {len(result.sources)} links...")
            try:
                self.job_client.submit_result(job.anime_id, episode, result.sources)
                self.channel.status(progress_line=f"Submission for Ep {episode} successful.")
            except BackendUnavailable as e:
                log(self.worker_id, str(e))
                self.channel.status(progress_line=f"Submission for Ep {episode} FAILED.")
            self.channel.processed_count += 1

        self._report_outcome(job, run.outcome)
        self.channel.status(progress_line='Manual job finished.')
        return 0

    def _report_outcome(self, job: EpisodeJob, outcome):
        if outcome is None:
            return
        if outcome.state == LoopState.ABORTED:
            self.channel.status(
                progress_line=f"Aborted {job.title} after {outcome.episodes_harvested} episodes: {outcome.error}"
            )
        else:
            self.channel.status(
                progress_line=f"Finished {job.title}: {outcome.episodes_harvested} episodes harvested."
            )
