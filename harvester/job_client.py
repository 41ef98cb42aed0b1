"""
Client for the Job Backend API.
Hands out anime batches and accepts harvested episode results.
"""

import random
import string
from typing import Iterable, List, Optional, Union

import requests

from harvester.errors import BackendUnavailable, MalformedInput
from harvester.log import log
from harvester.models import AnimeJob, CandidateLink


def _random_bot_id(length: int = 10) -> str:
    return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))


class JobClient:
    """Request/response wrapper around the job backend's REST endpoints."""

    def __init__(
        self,
        base_url: str,
        bot_id: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        if not base_url:
            raise ValueError("Job backend base URL must be configured")
        self.base_url = base_url.rstrip('/')
        self.bot_id = bot_id or _random_bot_id()
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})

    def set_base_url(self, base_url: str):
        if not base_url:
            raise ValueError("Job backend base URL must be configured")
        self.base_url = base_url.rstrip('/')
        log("API", f"Base URL set to: {self.base_url}")

    def _post(self, path: str, payload: dict) -> requests.Response:
        try:
            response = self.session.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response
        except requests.exceptions.HTTPError as e:
            detail = e.response.text[:200] if e.response is not None else ""
            raise BackendUnavailable(f"POST {path} failed: {e} {detail}".strip()) from e
        except requests.exceptions.RequestException as e:
            raise BackendUnavailable(f"POST {path} failed: {e}") from e

    def request_job(self, worker_id: Optional[str] = None) -> List[AnimeJob]:
        """
        Ask the backend for a package of anime to harvest.

        Args:
            worker_id: Identifier reported to the backend (defaults to bot_id)

        Returns:
            List of AnimeJob, empty when no work is available

        Raises:
            BackendUnavailable: on transport or HTTP failure
        """
        log("API", "Requesting jobs...")
        response = self._post('/jobs/request', {'botId': worker_id or self.bot_id})

        try:
            data = response.json()
        except ValueError as e:
            raise BackendUnavailable(f"Invalid job response: {e}") from e

        jobs = data.get('jobs') if isinstance(data, dict) else None
        if not isinstance(jobs, list) or not jobs:
            log("API", "No jobs available.")
            return []

        log("API", f"Received {len(jobs)} new jobs.")
        parsed = []
        for job in jobs:
            if not isinstance(job, dict):
                log("API", f"Skipping malformed job entry: {job!r}")
                continue
            try:
                parsed.append(AnimeJob.from_dict(job))
            except MalformedInput as e:
                log("API", f"Skipping malformed job entry: {e}")
        return parsed

    def submit_result(
        self,
        anime_id: int,
        episode_number: int,
        sources: Iterable[Union[CandidateLink, dict]]
    ) -> bool:
        """
        Send one harvested episode back to the backend.

        Args:
            anime_id: MAL ID of the anime
            episode_number: Episode that was harvested
            sources: Selected streaming links

        Returns:
            True once the backend acknowledged the result

        Raises:
            BackendUnavailable: on transport or HTTP failure
        """
        payload = {
            'botId': self.bot_id,
            'mal_id': anime_id,
            'episode_number': episode_number,
            'sources': [s.to_dict() if isinstance(s, CandidateLink) else dict(s) for s in sources],
        }
        log("API", f"Submitting result for MAL ID {anime_id} Ep {episode_number}.")
        self._post('/jobs/submit', payload)
        log("API", f"Result for MAL ID {anime_id} Ep {episode_number} submitted.")
        return True

    def close(self):
        self.session.close()
