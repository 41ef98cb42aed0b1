"""
Episode URL templates and base-link parsing.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from harvester.errors import MalformedInput


class PathStyle(Enum):
    """Known episode path layouts, tried in PATH_STYLES order."""
    FLAT = "{domain}/{slug}-episode-{episode}"
    ANIME_SEGMENT = "{domain}/anime/{slug}-episode-{episode}"


PATH_STYLES: Tuple[PathStyle, ...] = (PathStyle.FLAT, PathStyle.ANIME_SEGMENT)

DOMAIN_PATTERN = re.compile(r'^(https?://[^/]+)', re.IGNORECASE)
EPISODE_PATTERN = re.compile(r'episode-(\d+)', re.IGNORECASE)


@dataclass(frozen=True)
class EpisodeUrl:
    """URL of one episode page for a given path style."""
    domain: str
    slug: str
    episode: int
    style: PathStyle = PathStyle.FLAT

    @property
    def url(self) -> str:
        return self.style.value.format(domain=self.domain, slug=self.slug, episode=self.episode)

    def __str__(self) -> str:
        return self.url


def episode_urls(domain: str, slug: str, episode: int) -> List[EpisodeUrl]:
    """All candidate URLs for an episode, in fallback order."""
    return [EpisodeUrl(domain, slug, episode, style) for style in PATH_STYLES]


def extract_domain(url: str) -> Optional[str]:
    """
    Extract scheme and host from URL.

    Args:
        url: Any page URL (e.g., https://site.example/anime/one-piece)

    Returns:
        Domain with scheme (e.g., https://site.example) or None if not found
    """
    match = DOMAIN_PATTERN.match((url or "").strip())
    return match.group(1) if match else None


def extract_slug(url: str) -> Optional[str]:
    """
    Extract the anime slug from a series or episode URL.

    Args:
        url: e.g. https://site.example/anime/one-piece/ or
             https://site.example/one-piece-episode-12

    Returns:
        Slug (e.g., one-piece) or None if not found
    """
    clean_url = re.sub(r'-episode-\d+.*', '', (url or "").strip())
    match = re.search(r'/anime/([^/?#]+)', clean_url)
    if match:
        return match.group(1)
    match = re.search(r'https?://[^/]+/([^/?#]+)', clean_url)
    if match:
        return match.group(1).rstrip('/')
    return None


def extract_episode_number(url: str) -> Optional[int]:
    """Episode number referenced by an episode URL, if any."""
    match = EPISODE_PATTERN.search(url or "")
    return int(match.group(1)) if match else None


def parse_base_link(url: str) -> Tuple[str, str]:
    """
    Split a base link into (domain, slug).

    Raises:
        MalformedInput: if either part cannot be extracted
    """
    domain = extract_domain(url)
    slug = extract_slug(url)
    if not domain or not slug:
        raise MalformedInput(f"Could not extract slug/domain from {url!r}")
    return domain, slug
