"""
Candidate link model: label normalization and the per-episode link pool.
"""

import re
from typing import Dict, Iterator, List, Optional, Tuple

from harvester.config import (
    SERVER_PRIORITY, DEFAULT_SERVER, DEFAULT_SERVER_PRIORITY,
    QUALITY_RANK, UNKNOWN_QUALITY, UNKNOWN_QUALITY_RANK,
)
from harvester.models import CandidateLink


LABEL_PATTERN = re.compile(r'^(.+?)(?:\s*(\d{3,4}p))?$', re.IGNORECASE)


def server_rank(server: str) -> int:
    """Priority rank of a server (unknown servers rank last)."""
    return SERVER_PRIORITY.get(server, DEFAULT_SERVER_PRIORITY)


def quality_rank(quality: str) -> int:
    """Priority rank of a quality label (1080p first, unknown last)."""
    return QUALITY_RANK.get(quality, UNKNOWN_QUALITY_RANK)


def link_sort_key(link: CandidateLink) -> Tuple[int, int, str]:
    return server_rank(link.server), quality_rank(link.quality), link.quality


def normalize_label(raw_label: str) -> Tuple[str, str]:
    """
    Split a server option label into (server, quality).

    Args:
        raw_label: Option text (e.g., "Pucuk 720p", "Mega", "RandomHost 1080p")

    Returns:
        Tuple of known server name (or DefaultServer) and quality (or Unknown)
    """
    match = LABEL_PATTERN.match((raw_label or "").strip())
    if not match:
        return DEFAULT_SERVER, UNKNOWN_QUALITY

    server = match.group(1).strip()
    if server not in SERVER_PRIORITY:
        server = DEFAULT_SERVER

    quality = match.group(2).lower() if match.group(2) else UNKNOWN_QUALITY
    if quality not in QUALITY_RANK:
        quality = UNKNOWN_QUALITY
    return server, quality


def make_candidate(raw_label: str, url: str) -> CandidateLink:
    """Build a typed candidate from a raw option label and its source URL."""
    server, quality = normalize_label(raw_label)
    return CandidateLink(server=server, quality=quality, url=url, priority=server_rank(server))


class LinkPool:
    """
    Candidate links for one episode, keyed by server then quality.

    Only the first candidate for a (server, quality) pair is kept. The pool
    is frozen once extraction finishes and is read-only afterwards.
    """

    def __init__(self):
        self._links: Dict[str, Dict[str, CandidateLink]] = {}
        self._frozen = False

    def insert(self, candidate: CandidateLink) -> bool:
        """
        Add a candidate unless its (server, quality) slot is already taken.

        Returns:
            True if the candidate was added
        """
        if self._frozen:
            raise RuntimeError("LinkPool is frozen")
        by_quality = self._links.setdefault(candidate.server, {})
        if candidate.quality in by_quality:
            return False
        by_quality[candidate.quality] = candidate
        return True

    def freeze(self) -> "LinkPool":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, server: str, quality: str) -> Optional[CandidateLink]:
        return self._links.get(server, {}).get(quality)

    def has_server(self, server: str) -> bool:
        return bool(self._links.get(server))

    def servers(self) -> List[str]:
        return list(self._links.keys())

    def flatten(self) -> List[CandidateLink]:
        """All candidates sorted by (server rank, quality rank)."""
        return sorted(self, key=link_sort_key)

    def __iter__(self) -> Iterator[CandidateLink]:
        for by_quality in self._links.values():
            yield from by_quality.values()

    def __len__(self) -> int:
        return sum(len(by_quality) for by_quality in self._links.values())

    def __bool__(self) -> bool:
        return len(self) > 0
