"""Configuration using pydantic-settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class CrawlerSettings(BaseSettings):
    """Crawler configuration."""

    timeout: float = 30.0
    user_agent: str = "Mozilla/5.0 SiteCrawler/1.0"
    max_connections: int = 100
    max_keepalive_connections: int = 20
    follow_redirects: bool = True

    max_depth: int = Field(default=1, ge=0)
    concurrency: int = Field(default=1, ge=1)
    relate_to: Literal["parent", "root"] = "parent"
    progress_interval: int = Field(default=10, ge=0)
    log_level: str = "INFO"

    model_config = {"env_prefix": "CRAWLER_"}


settings = CrawlerSettings()
