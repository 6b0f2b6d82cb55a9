"""Factory for creating and managing adapter instances."""

from typing import Callable, Dict, List, Optional, Union

import structlog

from bizscout.config import ScraperConfig, settings
from bizscout.scrapers.adapters import ConfiguredSiteAdapter
from bizscout.scrapers.base import BaseAdapter, ScrapingConfig
from bizscout.scrapers.fetcher import RenderingProxyFetcher
from bizscout.scrapers.sites import SiteConfig
from bizscout.scrapers.utils import DomainRateLimiter


logger = structlog.get_logger(__name__)

# Builds an adapter from the shared fetcher and a run configuration
AdapterBuilder = Callable[[RenderingProxyFetcher, ScrapingConfig], BaseAdapter]


class AdapterFactory:
    """Factory for creating and configuring adapter instances.

    Every adapter it creates shares one fetcher, and through it one
    DomainRateLimiter, so the proxy's request budget is enforced across
    marketplaces rather than per marketplace.
    """

    def __init__(
        self,
        scraper_config: Optional[ScraperConfig] = None,
        rate_limiter: Optional[DomainRateLimiter] = None,
        fetcher: Optional[RenderingProxyFetcher] = None,
    ):
        """Initialize the adapter factory.

        Args:
            scraper_config: Proxy credentials and defaults (from settings if omitted)
            rate_limiter: Shared rate limiter (created if omitted)
            fetcher: Prebuilt fetcher; built lazily from scraper_config otherwise
        """
        self.scraper_config = scraper_config or settings.scraper_config()
        self.rate_limiter = rate_limiter or DomainRateLimiter()
        self._fetcher = fetcher
        self._registry: Dict[str, Union[SiteConfig, AdapterBuilder]] = {}

    @property
    def fetcher(self) -> RenderingProxyFetcher:
        """Shared fetcher.

        Raises:
            ConfigError: If no proxy API key is configured
        """
        if self._fetcher is None:
            self._fetcher = RenderingProxyFetcher(self.scraper_config, rate_limiter=self.rate_limiter)
            logger.info("fetcher_initialized", proxy=self._fetcher.proxy_host)
        return self._fetcher

    def default_scraping_config(self) -> ScrapingConfig:
        return ScrapingConfig(
            max_pages=self.scraper_config.max_pages,
            delay_between_requests=self.scraper_config.delay_between_requests,
            timeout=self.scraper_config.timeout_seconds,
            render_js=self.scraper_config.render_js,
        )

    def register_site(self, site: SiteConfig) -> None:
        """Register a declarative marketplace entry.

        Args:
            site: SiteConfig to scrape with ConfiguredSiteAdapter
        """
        self._registry[site.slug] = site
        logger.info("adapter_registered", source=site.slug, adapter_type="configured")

    def register_adapter(self, source: str, builder: AdapterBuilder) -> None:
        """Register a custom adapter builder for a source.

        Args:
            source: Source slug (e.g., "bizbuysell")
            builder: Callable taking (fetcher, config) and returning a BaseAdapter
        """
        if not callable(builder):
            raise ValueError(f"Adapter builder must be callable: {builder!r}")
        self._registry[source.lower()] = builder
        logger.info("adapter_registered", source=source, adapter_type="custom")

    def create_adapter(
        self,
        source: str,
        config: Optional[ScrapingConfig] = None,
    ) -> Optional[BaseAdapter]:
        """Create a configured adapter instance.

        Args:
            source: Source slug
            config: Run configuration (factory defaults if omitted)

        Returns:
            Adapter instance, or None if the source is not registered

        Raises:
            ConfigError: If the shared fetcher cannot be built
        """
        entry = self._registry.get(source.lower())
        if entry is None:
            logger.warning("adapter_not_found", source=source)
            return None

        config = config or self.default_scraping_config()
        if isinstance(entry, SiteConfig):
            adapter = ConfiguredSiteAdapter(entry, self.fetcher, config)
        else:
            adapter = entry(self.fetcher, config)
            if not isinstance(adapter, BaseAdapter):
                raise ValueError(f"Adapter builder for {source} did not return a BaseAdapter")

        logger.debug("adapter_created", source=source, adapter=type(adapter).__name__)
        return adapter

    def create_adapters(self, sources: Optional[List[str]] = None) -> Dict[str, BaseAdapter]:
        """Create adapters for the given sources (all registered if omitted).

        Unknown sources are skipped with a warning.
        """
        adapters: Dict[str, BaseAdapter] = {}
        for source in sources or self.get_registered_sources():
            adapter = self.create_adapter(source)
            if adapter is not None:
                adapters[source.lower()] = adapter
        return adapters

    def get_registered_sources(self) -> List[str]:
        """Get list of registered source slugs."""
        return list(self._registry.keys())

    def has_adapter(self, source: str) -> bool:
        return source.lower() in self._registry


# Global factory instance, built on first use so importing needs no credentials
_adapter_factory: Optional[AdapterFactory] = None


def get_adapter_factory() -> AdapterFactory:
    """Get the global adapter factory instance.

    Returns:
        AdapterFactory instance
    """
    global _adapter_factory
    if _adapter_factory is None:
        _adapter_factory = AdapterFactory()
    return _adapter_factory
