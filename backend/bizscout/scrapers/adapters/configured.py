"""Generic marketplace adapter driven by a SiteConfig entry."""

from typing import List, Optional

from bizscout.core.exceptions import FetchError
from bizscout.scrapers.base import BaseAdapter, RawListing, ScrapingConfig, ScrapingResult
from bizscout.scrapers.extraction import ExtractionEngine
from bizscout.scrapers.fetcher import RenderingProxyFetcher
from bizscout.scrapers.sites import SiteConfig


class ConfiguredSiteAdapter(BaseAdapter):
    """Scrapes one marketplace by walking its seed URLs page by page.

    Each seed URL runs its own page loop: fetch, extract, then follow the
    pagination control until it disappears or max_pages is reached. A failed
    fetch ends that seed's loop and is recorded as a page-scoped error.
    """

    def __init__(
        self,
        site: SiteConfig,
        fetcher: RenderingProxyFetcher,
        config: Optional[ScrapingConfig] = None,
    ):
        self.site = site
        self.source_slug = site.slug
        self.source_name = site.name
        super().__init__(config)

        self.fetcher = fetcher
        self.engine = ExtractionEngine(site)

    async def scrape(self) -> ScrapingResult:
        """Scrape every seed URL of the site.

        Returns:
            ScrapingResult; success is True when at least one page was fetched
        """
        self.reset_metrics()
        self.logger.info(
            "scrape_started",
            seeds=len(self.site.seed_urls),
            max_pages=self.config.max_pages,
        )

        listings: List[RawListing] = []
        total_found = 0
        pages_ok = 0

        try:
            for seed in self.site.seed_urls:
                found, ok = await self._scrape_seed(seed, listings)
                total_found += found
                pages_ok += ok
        finally:
            self.finish_metrics()

        self.logger.info(
            "scrape_finished",
            pages_ok=pages_ok,
            listings=len(listings),
            errors=len(self.metrics.errors),
            duration_seconds=self.metrics.duration,
        )

        return ScrapingResult(
            success=pages_ok > 0,
            listings=tuple(listings),
            errors=tuple(self.metrics.errors),
            total_found=total_found,
            total_scraped=len(listings),
        )

    async def _scrape_seed(self, seed: str, listings: List[RawListing]):
        """Run the page loop for one seed URL.

        Returns:
            (containers seen, pages fetched successfully)
        """
        render_js = self.config.render_js and self.site.render_js
        max_pages = max(1, self.config.max_pages)
        found = 0
        pages_ok = 0
        page = 1

        while True:
            url = self.site.page_url(seed, page)
            try:
                html = await self.fetcher.fetch(
                    url, timeout=self.config.timeout, render_js=render_js
                )
            except FetchError as e:
                self.record_failure(f"Page {page}: {e.message}")
                self.logger.warning("page_failed", page=page, url=url, error=e.message)
                break

            self.record_success()
            pages_ok += 1

            soup = self.engine.parse(html)
            report = self.engine.extract_from_soup(soup)
            listings.extend(report.listings)
            found += report.candidates
            self.metrics.listings_found += len(report.listings)

            self.logger.info(
                "page_extracted",
                page=page,
                url=url,
                selector=report.selector,
                candidates=report.candidates,
                listings=len(report.listings),
                discarded=report.discarded,
                filtered=report.filtered,
                failed=report.failed,
                clamped=report.clamped,
            )

            if page >= max_pages or not self.engine.has_next_page(soup):
                break

            page += 1
            await self.delay(self.config.delay_between_requests)

        return found, pages_ok
