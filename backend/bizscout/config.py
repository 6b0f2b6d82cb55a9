"""Application configuration via Pydantic Settings."""

from dataclasses import dataclass
from typing import List, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEDUP_NAME_SOURCE_URL = "name_source_url"
DEDUP_NAME_SOURCE = "name_source"


@dataclass(frozen=True)
class ScraperConfig:
    """Explicit configuration handed to the fetch layer and adapters.

    Built from Settings by default, but tests and callers can construct
    one directly to rotate keys without touching the environment.
    """

    api_key: str
    api_url: str = "https://api.scraperapi.com/"
    requests_per_minute: int = 30
    render_js: bool = True
    timeout_seconds: float = 90.0
    max_pages: int = 5
    delay_between_requests: float = 2.0


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./bizscout.db"

    @model_validator(mode="after")
    def fix_database_url(self) -> "Settings":
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://"""
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            self.DATABASE_URL = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgres://"):
            self.DATABASE_URL = url.replace("postgres://", "postgresql+asyncpg://", 1)
        return self

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Rendering proxy (ScraperAPI-compatible)
    SCRAPER_API_KEY: str = ""
    SCRAPER_API_URL: str = "https://api.scraperapi.com/"
    SCRAPER_API_RPM: int = 30
    SCRAPER_RENDER_JS: bool = True
    FETCH_TIMEOUT_SECONDS: float = 90.0

    # Scraping politeness
    SCRAPING_MAX_PAGES: int = 5
    SCRAPING_DELAY_SECONDS: float = 2.0
    SOURCE_DELAY_SECONDS: float = 5.0
    ENABLED_SOURCES: str = ""  # Comma-separated source slugs, empty = all

    # Persistence
    PERSIST_BATCH_SIZE: int = 100
    DEDUP_KEY: str = DEDUP_NAME_SOURCE_URL

    # Scheduler
    SCRAPING_SCHEDULE_ENABLED: bool = False
    SCRAPING_CRON_EXPRESSION: str = "0 2 * * *"  # Daily at 2 AM
    SCRAPING_TIMEZONE: str = "America/New_York"

    @model_validator(mode="after")
    def check_dedup_key(self) -> "Settings":
        if self.DEDUP_KEY not in (DEDUP_NAME_SOURCE_URL, DEDUP_NAME_SOURCE):
            raise ValueError(
                f"DEDUP_KEY must be '{DEDUP_NAME_SOURCE_URL}' or '{DEDUP_NAME_SOURCE}'"
            )
        return self

    def get_enabled_sources(self) -> List[str]:
        """Parse ENABLED_SOURCES into a list of source slugs.

        Returns:
            List of slugs, empty if ENABLED_SOURCES is not set
        """
        if not self.ENABLED_SOURCES:
            return []
        return [s.strip().lower() for s in self.ENABLED_SOURCES.split(",") if s.strip()]

    def scraper_config(self, api_key: Optional[str] = None) -> ScraperConfig:
        """Build the explicit ScraperConfig from these settings.

        Args:
            api_key: Optional key overriding SCRAPER_API_KEY

        Returns:
            ScraperConfig instance
        """
        return ScraperConfig(
            api_key=api_key if api_key is not None else self.SCRAPER_API_KEY,
            api_url=self.SCRAPER_API_URL,
            requests_per_minute=self.SCRAPER_API_RPM,
            render_js=self.SCRAPER_RENDER_JS,
            timeout_seconds=self.FETCH_TIMEOUT_SECONDS,
            max_pages=self.SCRAPING_MAX_PAGES,
            delay_between_requests=self.SCRAPING_DELAY_SECONDS,
        )


settings = Settings()
