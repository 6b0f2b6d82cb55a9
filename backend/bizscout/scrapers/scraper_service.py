"""Scraping orchestration service.

Runs marketplace adapters in sequence, aggregates their listings into a
session, and hands the listings to the persistence gateway.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import structlog

from bizscout.config import settings
from bizscout.core.exceptions import NotFoundError
from bizscout.scrapers.base import BaseAdapter, RawListing, ScraperMetrics, ScrapingResult, utcnow
from bizscout.scrapers.factory import AdapterFactory, get_adapter_factory

logger = structlog.get_logger(__name__)


STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

OUTCOME_SUCCEEDED = "succeeded"
OUTCOME_PARTIAL = "partially_succeeded"
OUTCOME_FAILED = "failed"


def generate_session_id() -> str:
    return f"scraping-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


@dataclass
class ScrapingSession:
    """One orchestrated run across a set of sources.

    ``status`` is the legacy binary view (any error means "failed");
    ``outcome`` tells a total failure apart from a partial one.
    """

    id: str
    sources: List[str]
    start_time: datetime = field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    status: str = STATUS_RUNNING
    outcome: Optional[str] = None
    results: Dict[str, ScrapingResult] = field(default_factory=dict)
    total_listings: int = 0
    saved_count: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def finish(self) -> None:
        """Stamp end time and derive status, outcome and the listing total."""
        self.end_time = utcnow()
        self.total_listings = sum(
            len(result.listings) for result in self.results.values() if result.success
        )
        self.status = STATUS_COMPLETED if not self.errors else STATUS_FAILED

        if not self.errors:
            self.outcome = OUTCOME_SUCCEEDED
        elif any(result.success for result in self.results.values()):
            self.outcome = OUTCOME_PARTIAL
        else:
            self.outcome = OUTCOME_FAILED

    def to_dict(self, include_listings: bool = True) -> Dict[str, Any]:
        results = {}
        for source, result in self.results.items():
            data = result.to_dict()
            if not include_listings:
                data.pop("listings")
                data["listingCount"] = len(result.listings)
            results[source] = data

        return {
            "id": self.id,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "status": self.status,
            "outcome": self.outcome,
            "totalListings": self.total_listings,
            "savedCount": self.saved_count,
            "sources": list(self.sources),
            "results": results,
            "errors": list(self.errors),
        }


class ScrapingService:
    """Runs adapters one after another and persists what they find.

    One adapter's failure never aborts the session: a failed result or an
    exception is recorded as a session error and the next adapter runs.
    """

    def __init__(
        self,
        adapters: Optional[Mapping[str, BaseAdapter]] = None,
        factory: Optional[AdapterFactory] = None,
        listing_service=None,
        source_delay: Optional[float] = None,
    ):
        """Initialize the scraping service.

        Args:
            adapters: Adapters keyed by source slug; built from the factory if omitted
            factory: Adapter factory (global factory if omitted)
            listing_service: Persistence gateway; listings are not saved without one
            source_delay: Seconds to wait between adapters (SOURCE_DELAY_SECONDS default)

        Raises:
            ConfigError: If adapters must be built and no proxy key is configured
        """
        if adapters is None:
            factory = factory or get_adapter_factory()
            adapters = factory.create_adapters(settings.get_enabled_sources() or None)

        self.adapters: Dict[str, BaseAdapter] = {k.lower(): v for k, v in adapters.items()}
        self.listing_service = listing_service
        self.source_delay = settings.SOURCE_DELAY_SECONDS if source_delay is None else source_delay
        self.current_session: Optional[ScrapingSession] = None
        self.logger = logger.bind(service="scraping_service")

    async def scrape_all(self, config: Optional[Mapping[str, Any]] = None) -> ScrapingSession:
        """Run every adapter.

        Args:
            config: ScrapingConfig overrides applied to each adapter

        Returns:
            Finished ScrapingSession
        """
        return await self.scrape_sources(list(self.adapters.keys()), config)

    async def scrape_sources(
        self,
        sources: List[str],
        config: Optional[Mapping[str, Any]] = None,
    ) -> ScrapingSession:
        """Run the named adapters in order.

        Args:
            sources: Source slugs; unknown names become session errors
            config: ScrapingConfig overrides applied to each adapter

        Returns:
            Finished ScrapingSession
        """
        sources = [s.lower() for s in sources]
        session = ScrapingSession(id=generate_session_id(), sources=sources)
        self.current_session = session
        self.logger.info("session_started", session_id=session.id, sources=sources)

        all_listings: List[RawListing] = []

        for index, source in enumerate(sources):
            adapter = self.adapters.get(source)
            if adapter is None:
                message = f"{source}: no adapter registered"
                session.errors.append(message)
                session.results[source] = ScrapingResult.failure(message)
                self.logger.error("adapter_not_found", source=source)
                continue

            result = await self._run_adapter(source, adapter, config, session)
            if result.success:
                all_listings.extend(result.listings)

            # Politeness delay between marketplaces, not after the last one
            if index < len(sources) - 1:
                await self.delay(self.source_delay)

        await self._save(all_listings, session)
        session.finish()

        if self.listing_service is not None:
            try:
                await self.listing_service.record_session(session)
            except Exception as e:
                self.logger.warning("session_record_failed", session_id=session.id, error=str(e))

        self.logger.info(
            "session_finished",
            session_id=session.id,
            status=session.status,
            outcome=session.outcome,
            total_listings=session.total_listings,
            saved=session.saved_count,
            errors=len(session.errors),
            duration_seconds=session.duration_seconds,
        )
        return session

    async def _run_adapter(
        self,
        source: str,
        adapter: BaseAdapter,
        config: Optional[Mapping[str, Any]],
        session: ScrapingSession,
    ) -> ScrapingResult:
        self.logger.info("adapter_started", source=source)
        try:
            adapter.update_config(**(config or {}))
            result = await adapter.scrape()
        except Exception as e:
            message = f"{source}: {e}"
            session.errors.append(message)
            result = ScrapingResult.failure(message)
            self.logger.error("adapter_failed", source=source, error=str(e), exc_info=True)
        else:
            if result.success:
                self.logger.info(
                    "adapter_succeeded",
                    source=source,
                    listings=len(result.listings),
                    page_errors=len(result.errors),
                )
            else:
                errors = list(result.errors) or [f"{source} scraping failed"]
                session.errors.extend(errors)
                self.logger.error("adapter_unsuccessful", source=source, errors=errors)
        finally:
            try:
                await adapter.cleanup()
            except Exception as e:
                self.logger.warning("adapter_cleanup_failed", source=source, error=str(e))

        session.results[source] = result
        return result

    async def _save(self, listings: List[RawListing], session: ScrapingSession) -> None:
        if self.listing_service is None or not listings:
            return
        try:
            report = await self.listing_service.save_listings(listings)
        except Exception as e:
            message = f"Database save failed: {e}"
            session.errors.append(message)
            self.logger.error("listings_save_failed", session_id=session.id, error=str(e), exc_info=True)
            return

        session.saved_count = report.saved
        self.logger.info(
            "listings_saved",
            session_id=session.id,
            saved=report.saved,
            skipped_existing=report.skipped_existing,
            failed_batches=report.failed_batches,
        )

    async def scrape_source(
        self,
        source: str,
        config: Optional[Mapping[str, Any]] = None,
    ) -> ScrapingResult:
        """Run a single adapter outside of a session.

        Args:
            source: Source slug
            config: ScrapingConfig overrides

        Returns:
            The adapter's ScrapingResult

        Raises:
            NotFoundError: If no adapter is registered for the source
        """
        adapter = self.adapters.get(source.lower())
        if adapter is None:
            raise NotFoundError("Scraper", source)

        self.logger.info("single_source_started", source=source)
        adapter.update_config(**(config or {}))
        try:
            result = await adapter.scrape()
        finally:
            await adapter.cleanup()

        if result.success and result.listings and self.listing_service is not None:
            try:
                report = await self.listing_service.save_listings(list(result.listings))
                self.logger.info("listings_saved", source=source, saved=report.saved)
            except Exception as e:
                self.logger.error("listings_save_failed", source=source, error=str(e), exc_info=True)

        return result

    async def delay(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)

    def get_available_sources(self) -> List[str]:
        return list(self.adapters.keys())

    def get_current_session(self) -> Optional[ScrapingSession]:
        return self.current_session

    def get_scraper_metrics(self, source: str) -> Optional[ScraperMetrics]:
        adapter = self.adapters.get(source.lower())
        return adapter.get_metrics() if adapter else None
