"""
Configuration dataclasses for the episode harvester.
"""

from dataclasses import dataclass, field
from typing import Tuple


# Server priority table (smaller number = higher priority)
SERVER_PRIORITY = {
    'Pucuk': 1,
    'Nakama': 2,
    'Premium': 3,
    'Vidhide': 4,
    'Mega': 5,
    'Blogspot': 6,
}
DEFAULT_SERVER = 'DefaultServer'
DEFAULT_SERVER_PRIORITY = 99

# Order used when choosing servers for the final output (catch-all excluded)
OUTPUT_SERVER_ORDER: Tuple[str, ...] = ('Pucuk', 'Nakama', 'Premium', 'Vidhide', 'Mega', 'Blogspot')

TARGET_QUALITIES: Tuple[str, ...] = ('1080p', '720p', '480p')
UNKNOWN_QUALITY = 'Unknown'
QUALITY_RANK = {'1080p': 1, '720p': 2, '480p': 3}
UNKNOWN_QUALITY_RANK = 99


@dataclass
class SelectionConfig:
    """Configuration for primary server selection and slot patching."""
    primary_server_count: int = 2
    target_qualities: Tuple[str, ...] = TARGET_QUALITIES
    server_order: Tuple[str, ...] = OUTPUT_SERVER_ORDER

    @property
    def min_pool_size(self) -> int:
        """Links needed before extraction may stop clicking early."""
        return self.primary_server_count * len(self.target_qualities) + len(self.target_qualities)


@dataclass
class ExtractorConfig:
    """Configuration for per-episode link extraction."""
    server_selector: str = 'div.east_player_option'
    navigation_timeout: float = 30.0
    selector_timeout: float = 20.0
    click_settle: float = 5.0
    max_server_clicks: int = 5
    blocked_hosts: Tuple[str, ...] = ('facebook.com', 'sso.ruangotaku.com', 'ads.google.com')


@dataclass
class DiscoveryConfig:
    """Configuration for the episode discovery loop."""
    episode_delay: float = 2.0
    # 0 = no ceiling beyond the job's own bound
    max_episodes: int = 0


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    base_delay: float = 2.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0


@dataclass
class WorkerConfig:
    """Configuration for worker supervision and job acquisition."""
    no_work_interval: float = 600.0
    error_backoff_fraction: float = 0.2
    exit_grace: float = 5.0
    stop_grace: float = 10.0
    start_stagger: float = 1.5
    request_timeout: float = 30.0

    @property
    def error_backoff(self) -> float:
        return self.no_work_interval * self.error_backoff_fraction


@dataclass
class HarvesterConfig:
    """Main configuration for the harvester system."""
    # Browser settings
    headless: bool = True

    selection: SelectionConfig = field(default_factory=SelectionConfig)
    extractor: ExtractorConfig = field(default_factory=ExtractorConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    worker: WorkerConfig = field(default_factory=WorkerConfig)
