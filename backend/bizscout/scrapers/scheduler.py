"""APScheduler-based scraping scheduler.

Runs a full scraping session (every registered marketplace) on a cron
schedule. Errors in a scheduled run are logged and never stop the scheduler,
except configuration errors, which surface at start() and on every run.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from bizscout.config import Settings, settings
from bizscout.core.exceptions import ConfigError
from bizscout.scrapers.scraper_service import STATUS_COMPLETED, ScrapingService, ScrapingSession

logger = structlog.get_logger(__name__)


JOB_ID = "scrape_all"


@dataclass(frozen=True)
class ScheduleConfig:
    """When and how the scheduled session runs."""

    enabled: bool = False
    cron_expression: str = "0 2 * * *"  # Daily at 2 AM
    timezone: str = "America/New_York"
    max_pages: Optional[int] = None
    delay_between_requests: Optional[float] = None  # seconds

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "ScheduleConfig":
        return cls(
            enabled=source.SCRAPING_SCHEDULE_ENABLED,
            cron_expression=source.SCRAPING_CRON_EXPRESSION,
            timezone=source.SCRAPING_TIMEZONE,
            max_pages=source.SCRAPING_MAX_PAGES,
            delay_between_requests=source.SCRAPING_DELAY_SECONDS,
        )


class ScrapingScheduler:
    """Schedules periodic scrape_all() sessions.

    The scraping service is built fresh for each run through
    ``service_factory`` so a run always sees current adapters and settings.
    """

    def __init__(
        self,
        service_factory: Callable[[], ScrapingService],
        config: Optional[ScheduleConfig] = None,
    ):
        """Initialize the scheduler.

        Args:
            service_factory: Builds the ScrapingService used by each run
            config: Schedule configuration (from settings if omitted)
        """
        self.service_factory = service_factory
        self.config = config or ScheduleConfig.from_settings()
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.job: Optional[Job] = None
        self.last_session: Optional[ScrapingSession] = None
        self.logger = logger.bind(service="scraping_scheduler")

    def start(self) -> None:
        """Start the cron job. Must be called with an event loop running.

        Raises:
            ValueError: If the cron expression is invalid
            ConfigError: If the scraping service cannot be built (e.g. no proxy key)
        """
        if not self.config.enabled:
            self.logger.info("scheduler_disabled")
            return

        if self.is_running():
            self.logger.warning("scheduler_already_running")
            return

        trigger = CronTrigger.from_crontab(self.config.cron_expression, timezone=self.config.timezone)

        # Build once up front so configuration errors surface before any job is scheduled
        self.service_factory()

        self.scheduler = AsyncIOScheduler(timezone=self.config.timezone)
        self.job = self.scheduler.add_job(
            func=self.run_scheduled_scrape,
            trigger=trigger,
            id=JOB_ID,
            name="Scrape all marketplaces",
            replace_existing=True,
            max_instances=1,  # Sessions never overlap
            coalesce=True,
        )
        self.scheduler.start()

        self.logger.info(
            "scheduler_started",
            cron_expression=self.config.cron_expression,
            timezone=self.config.timezone,
            next_run=self.job.next_run_time.isoformat() if self.job.next_run_time else None,
        )

    def stop(self) -> None:
        """Stop the scheduler if it is running."""
        if self.scheduler is None:
            return
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.scheduler = None
        self.job = None
        self.logger.info("scheduler_stopped")

    def is_running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    async def run_scheduled_scrape(self) -> Optional[ScrapingSession]:
        """Run one full session.

        Returns:
            The finished session, or None if the run blew up before finishing

        Raises:
            ConfigError: If the scraping service cannot be built; every other
                error is logged and swallowed
        """
        self.logger.info("scheduled_scrape_started")

        overrides = {
            "max_pages": self.config.max_pages,
            "delay_between_requests": self.config.delay_between_requests,
        }

        try:
            service = self.service_factory()
            session = await service.scrape_all(overrides)
        except ConfigError:
            self.logger.error("scheduled_scrape_misconfigured", exc_info=True)
            raise
        except Exception as e:
            self.logger.error("scheduled_scrape_failed", error=str(e), exc_info=True)
            return None

        self.last_session = session
        if session.status == STATUS_COMPLETED:
            self.logger.info(
                "scheduled_scrape_completed",
                session_id=session.id,
                total_listings=session.total_listings,
                sources=len(session.sources),
            )
        else:
            self.logger.error(
                "scheduled_scrape_finished_with_errors",
                session_id=session.id,
                outcome=session.outcome,
                total_listings=session.total_listings,
                errors=session.errors,
            )
        return session

    def update_config(self, **changes: Any) -> None:
        """Merge schedule changes; restart when the trigger or enabled flag changes."""
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            return

        self.config = replace(self.config, **changes)
        needs_restart = "cron_expression" in changes or "enabled" in changes or "timezone" in changes

        if self.is_running() and needs_restart:
            self.stop()
            self.start()

    def get_config(self) -> ScheduleConfig:
        return self.config
