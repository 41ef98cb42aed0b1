"""
Data models for the episode harvester.
"""

from dataclasses import dataclass, field, asdict, fields
from typing import List, Optional

from harvester.errors import MalformedInput


@dataclass(frozen=True)
class CandidateLink:
    """One discovered (server, quality, url) triple for an episode."""
    server: str
    quality: str
    url: str
    priority: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AnimeJob:
    """One entry of a batch handed out by the job backend."""
    mal_id: int
    title: str
    base_links: List[dict] = field(default_factory=list)
    total_episodes: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AnimeJob":
        """
        Build a job from one batch entry.

        A missing or non-numeric episode count leaves the job unbounded.

        Raises:
            MalformedInput: if the entry has no integer mal_id
        """
        try:
            mal_id = int(data.get('mal_id'))
        except (TypeError, ValueError) as e:
            raise MalformedInput(f"Invalid mal_id in job entry: {data.get('mal_id')!r}") from e

        total = data.get('total_episodes') or data.get('episodes')
        try:
            total_episodes = int(total) if total else None
        except (TypeError, ValueError):
            total_episodes = None

        return cls(
            mal_id=mal_id,
            title=data.get('title') or f"MAL ID {mal_id}",
            base_links=list(data.get('base_links') or []),
            total_episodes=total_episodes if total_episodes and total_episodes > 0 else None,
        )

    @property
    def base_url(self) -> Optional[str]:
        for link in self.base_links:
            if isinstance(link, dict) and link.get('url'):
                return link['url']
        return None


@dataclass
class EpisodeJob:
    """Harvesting job for a single anime."""
    anime_id: int
    title: str
    domain: str
    slug: str
    start_episode: int = 1
    # 0 = run until an episode is not found
    end_episode: int = 0


@dataclass
class EpisodeResult:
    """Selected sources for one successfully harvested episode."""
    anime_id: int
    episode_number: int
    url: str
    sources: List[CandidateLink]


@dataclass
class SubmissionItem:
    """A harvested episode waiting to be forwarded to the job backend."""
    anime_id: int
    episode_number: int
    sources: List[CandidateLink]

    def to_payload(self) -> List[dict]:
        return [link.to_dict() for link in self.sources]


@dataclass
class WorkerState:
    """Live, displayable state of one worker."""
    id: str
    anime_title: str = ""
    episode: Optional[int] = None
    processed_count: int = 0
    progress_line: str = ""

    def merge(self, partial: dict) -> "WorkerState":
        """Return a copy with the known fields of ``partial`` overwritten."""
        known = {f.name for f in fields(self)} - {'id'}
        updates = {k: v for k, v in partial.items() if k in known}
        data = asdict(self)
        data.update(updates)
        return WorkerState(**data)

    def to_dict(self) -> dict:
        return asdict(self)
