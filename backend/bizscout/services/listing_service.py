"""Listing persistence gateway.

Writes normalized listings to the business_listings table in batches.
Writes are select-then-insert on the dedup key, so re-running the same
batch never creates duplicate rows.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional

import structlog
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bizscout.config import DEDUP_NAME_SOURCE, DEDUP_NAME_SOURCE_URL, settings
from bizscout.core.exceptions import PersistenceError
from bizscout.models.listing import BusinessListing
from bizscout.models.scraping_session import ScrapingSessionRecord
from bizscout.scrapers.base import RawListing
from bizscout.scrapers.utils.normalizer import MAX_STORED_AMOUNT

logger = structlog.get_logger(__name__)


DEDUP_KEYS: Dict[str, Callable[[Any], Hashable]] = {
    DEDUP_NAME_SOURCE_URL: lambda item: (item.name, item.source, item.original_url),
    DEDUP_NAME_SOURCE: lambda item: (item.name, item.source),
}


@dataclass
class SaveReport:
    """Outcome of save_listings()."""

    saved: int = 0
    skipped_existing: int = 0
    failed_batches: int = 0
    errors: List[str] = field(default_factory=list)


def _clamp(value: Optional[int]) -> int:
    if not value or value < 0:
        return 0
    return min(int(value), MAX_STORED_AMOUNT)


class ListingService:
    """Persistence gateway for scraped listings and session summaries."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        batch_size: Optional[int] = None,
        dedup_key: Optional[str] = None,
    ):
        """Initialize the listing service.

        Args:
            session_factory: Async session factory for database access
            batch_size: Rows per transaction (PERSIST_BATCH_SIZE default)
            dedup_key: "name_source_url" or legacy "name_source" (DEDUP_KEY default)
        """
        dedup_key = dedup_key or settings.DEDUP_KEY
        if dedup_key not in DEDUP_KEYS:
            raise ValueError(f"Unknown dedup key: {dedup_key}")

        self.session_factory = session_factory
        self.batch_size = batch_size or settings.PERSIST_BATCH_SIZE
        self.dedup_key = dedup_key
        self.key_of = DEDUP_KEYS[dedup_key]
        self.logger = logger.bind(service="listing_service")

    def deduplicate(self, listings: Iterable[RawListing]) -> List[RawListing]:
        """Keep the first listing per dedup key, preserving order."""
        seen = set()
        unique = []
        for listing in listings:
            key = self.key_of(listing)
            if key in seen:
                continue
            seen.add(key)
            unique.append(listing)
        return unique

    @staticmethod
    def to_row(listing: RawListing) -> Dict[str, Any]:
        """Map a RawListing to business_listings column values."""
        return {
            "name": listing.name,
            "description": listing.description or None,
            "asking_price": _clamp(listing.asking_price),
            "annual_revenue": _clamp(listing.annual_revenue),
            "industry": listing.industry,
            "location": listing.location,
            "source": listing.source,
            "highlights": list(listing.highlights),
            "image_url": listing.image_url or None,
            "original_url": listing.original_url or None,
            "status": "active",
            "scraped_at": listing.scraped_at,
        }

    async def save_listings(self, listings: Iterable[RawListing]) -> SaveReport:
        """Persist listings in batches, skipping rows that already exist.

        A batch that fails is rolled back and logged; later batches still run.

        Args:
            listings: Listings to store

        Returns:
            SaveReport with saved / skipped / failed counts
        """
        unique = self.deduplicate(listings)
        report = SaveReport()
        if not unique:
            return report

        batches = [unique[i:i + self.batch_size] for i in range(0, len(unique), self.batch_size)]
        self.logger.info(
            "saving_listings",
            count=len(unique),
            batches=len(batches),
            dedup_key=self.dedup_key,
        )

        for index, batch in enumerate(batches, start=1):
            async with self.session_factory() as db:
                try:
                    saved, skipped = await self._save_batch(db, batch)
                    await db.commit()
                except Exception as e:
                    await db.rollback()
                    error = PersistenceError(index, str(e))
                    report.failed_batches += 1
                    report.errors.append(error.message)
                    self.logger.error(
                        "batch_save_failed",
                        batch=index,
                        size=len(batch),
                        error=str(e),
                        exc_info=True,
                    )
                    continue

            report.saved += saved
            report.skipped_existing += skipped
            self.logger.debug("batch_saved", batch=index, saved=saved, skipped=skipped)

        self.logger.info(
            "listings_saved",
            saved=report.saved,
            skipped_existing=report.skipped_existing,
            failed_batches=report.failed_batches,
        )
        return report

    async def _save_batch(self, db: AsyncSession, batch: List[RawListing]):
        """Insert the rows of one batch that are not already stored.

        Returns:
            (rows inserted, rows skipped as existing)
        """
        rows = [self.to_row(listing) for listing in batch]

        result = await db.execute(
            select(
                BusinessListing.name,
                BusinessListing.source,
                BusinessListing.original_url,
            ).where(
                BusinessListing.source.in_({row["source"] for row in rows}),
                BusinessListing.name.in_({row["name"] for row in rows}),
            )
        )
        existing = {self.key_of(row) for row in result.all()}

        saved = 0
        for listing, row in zip(batch, rows):
            if self.key_of(listing) in existing:
                continue
            db.add(BusinessListing(**row))
            saved += 1

        await db.flush()
        return saved, len(batch) - saved

    async def record_session(self, session) -> ScrapingSessionRecord:
        """Store a finished ScrapingSession summary.

        Args:
            session: ScrapingSession from the scraping service

        Returns:
            Created ScrapingSessionRecord
        """
        summary = session.to_dict(include_listings=False)
        duration = session.duration_seconds

        record = ScrapingSessionRecord(
            session_id=session.id,
            status=session.status,
            outcome=session.outcome,
            started_at=session.start_time,
            completed_at=session.end_time,
            duration_seconds=Decimal(str(round(duration, 2))) if duration is not None else None,
            total_listings=session.total_listings,
            saved_listings=session.saved_count,
            sources=list(session.sources),
            error_message="\n".join(session.errors) or None,
            results=summary["results"],
        )

        async with self.session_factory() as db:
            db.add(record)
            await db.commit()
            await db.refresh(record)

        self.logger.info("session_recorded", session_id=session.id, status=session.status)
        return record

    async def count_by_source(self) -> Dict[str, int]:
        """Count stored listings per source."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(BusinessListing.source, func.count(BusinessListing.id))
                .group_by(BusinessListing.source)
            )
            return {source: count for source, count in result.all()}

    async def get_recent_listings(self, limit: int = 10) -> List[BusinessListing]:
        """Most recently scraped listings, newest first."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(BusinessListing)
                .order_by(desc(BusinessListing.scraped_at), desc(BusinessListing.created_at))
                .limit(limit)
            )
            return list(result.scalars().all())
