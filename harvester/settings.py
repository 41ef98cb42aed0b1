"""Process settings loaded from the environment / .env file."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from harvester.config import HarvesterConfig, WorkerConfig, DiscoveryConfig


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=Path.cwd() / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Episode Harvester"
    api_version: str = "1.0.0"
    debug: bool = False

    # Job backend
    job_api_url: str = ""

    # Browser
    headless: bool = True

    # Worker timing
    no_work_interval: float = 600.0
    episode_delay: float = 2.0
    max_episodes: int = 0

    # Dashboard server
    host: str = "0.0.0.0"
    port: int = 3000

    # CORS - accepts comma-separated string from env
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Return CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def api_url(self) -> Optional[str]:
        return self.job_api_url or None

    def harvester_config(self) -> HarvesterConfig:
        return HarvesterConfig(
            headless=self.headless,
            discovery=DiscoveryConfig(episode_delay=self.episode_delay, max_episodes=self.max_episodes),
            worker=WorkerConfig(no_work_interval=self.no_work_interval),
        )


settings = Settings()
