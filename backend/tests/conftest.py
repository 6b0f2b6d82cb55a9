"""Pytest configuration and shared fixtures."""

from typing import Callable, Dict, List

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bizscout.config import ScraperConfig
from bizscout.models import Base
from bizscout.scrapers.base import RawListing
from bizscout.scrapers.fetcher import RenderingProxyFetcher
from bizscout.scrapers.utils import DomainRateLimiter


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


# ============================================================================
# DATABASE
# ============================================================================

@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


# ============================================================================
# LISTINGS
# ============================================================================

@pytest.fixture
def make_listing() -> Callable[..., RawListing]:
    """Build RawListing objects with sensible defaults."""

    def _make(name: str = "Profitable Coffee Shop", source: str = "BizBuySell", **kwargs) -> RawListing:
        kwargs.setdefault("asking_price", 250_000)
        kwargs.setdefault("annual_revenue", 400_000)
        kwargs.setdefault("location", "Austin, TX")
        kwargs.setdefault(
            "original_url",
            f"https://www.bizbuysell.com/business-for-sale/{name.lower().replace(' ', '-')}/",
        )
        return RawListing(name=name, source=source, **kwargs)

    return _make


# ============================================================================
# FETCHING
# ============================================================================

@pytest.fixture
def scraper_config() -> ScraperConfig:
    return ScraperConfig(
        api_key="test-key",
        api_url="https://proxy.test/",
        requests_per_minute=6000,
        timeout_seconds=5.0,
        max_pages=5,
        delay_between_requests=0,
    )


@pytest.fixture
def pages_fetcher(scraper_config) -> Callable[[Dict[str, str]], RenderingProxyFetcher]:
    """Fetcher whose proxy answers from a {target_url: html} map.

    Unknown URLs get a 500. Every requested target URL is appended to
    ``fetcher.requested``.
    """

    def _build(pages: Dict[str, str]) -> RenderingProxyFetcher:
        requested: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            target = request.url.params["url"]
            requested.append(target)
            if target in pages:
                return httpx.Response(200, text=pages[target])
            return httpx.Response(500, text="upstream error")

        fetcher = RenderingProxyFetcher(
            scraper_config,
            rate_limiter=DomainRateLimiter(),
            transport=httpx.MockTransport(handler),
        )
        fetcher.requested = requested
        return fetcher

    return _build
