"""Base source adapter interface.

All marketplace adapters inherit from BaseAdapter and implement scrape().
The data structures here are what adapters hand back to the orchestrator.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import structlog


MAX_HIGHLIGHTS = 3


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RawListing:
    """Normalized, pre-persistence representation of one scraped listing."""

    name: str
    source: str
    asking_price: int = 0
    annual_revenue: int = 0
    industry: str = "Business"
    location: str = ""
    description: Optional[str] = None
    highlights: List[str] = field(default_factory=list)
    image_url: Optional[str] = None
    original_url: Optional[str] = None
    scraped_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.name:
            raise ValueError("name is required")
        if not self.source:
            raise ValueError("source is required")
        if self.asking_price is None or self.asking_price < 0:
            raise ValueError("asking_price must be a non-negative integer")
        if self.annual_revenue is None or self.annual_revenue < 0:
            raise ValueError("annual_revenue must be a non-negative integer")

        # Ordered set semantics: drop repeats, keep first position
        seen = set()
        unique = []
        for tag in self.highlights:
            if tag and tag not in seen:
                seen.add(tag)
                unique.append(tag)
        self.highlights = unique[:MAX_HIGHLIGHTS]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "askingPrice": self.asking_price,
            "annualRevenue": self.annual_revenue,
            "industry": self.industry,
            "location": self.location,
            "source": self.source,
            "highlights": list(self.highlights),
            "imageUrl": self.image_url,
            "originalUrl": self.original_url,
            "scrapedAt": self.scraped_at.isoformat(),
        }


@dataclass(frozen=True)
class ScrapingResult:
    """One adapter invocation's output. Immutable once returned."""

    success: bool
    listings: Tuple[RawListing, ...] = ()
    errors: Tuple[str, ...] = ()
    total_found: int = 0
    total_scraped: int = 0

    @classmethod
    def failure(cls, *errors: str) -> "ScrapingResult":
        """Build an error-only result."""
        return cls(success=False, listings=(), errors=tuple(errors))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "listings": [listing.to_dict() for listing in self.listings],
            "errors": list(self.errors),
            "totalFound": self.total_found,
            "totalScraped": self.total_scraped,
        }


@dataclass
class ScrapingConfig:
    """Per-run adapter configuration."""

    max_pages: int = 5
    delay_between_requests: float = 2.0  # seconds
    timeout: float = 90.0  # seconds
    render_js: bool = True


@dataclass
class ScraperMetrics:
    """Per-adapter request counters, owned by the adapter."""

    start_time: datetime = field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    duration: Optional[float] = None  # seconds
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    listings_found: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start_time"] = self.start_time.isoformat()
        data["end_time"] = self.end_time.isoformat() if self.end_time else None
        return data


class BaseAdapter(ABC):
    """Abstract base class for all marketplace adapters.

    Subclasses implement scrape(). Metrics bookkeeping and configuration
    merging live here so every adapter reports the same way.
    """

    source_slug: str = ""  # Must be overridden (e.g., "bizbuysell")
    source_name: str = ""  # Must be overridden (e.g., "BizBuySell")

    def __init__(self, config: Optional[ScrapingConfig] = None):
        """Initialize the adapter.

        Args:
            config: Optional run configuration, defaults applied otherwise
        """
        self.config = config or ScrapingConfig()
        self.metrics = ScraperMetrics()
        self.logger = structlog.get_logger(__name__).bind(adapter=self.source_slug)

    @abstractmethod
    async def scrape(self) -> ScrapingResult:
        """Scrape listings from this marketplace.

        Returns:
            ScrapingResult with the listings found and any page errors
        """

    def update_config(self, **changes: Any) -> None:
        """Merge configuration overrides, ignoring None values.

        Args:
            **changes: ScrapingConfig field overrides
        """
        changes = {k: v for k, v in changes.items() if v is not None}
        if changes:
            self.config = replace(self.config, **changes)

    def reset_metrics(self) -> None:
        """Start a fresh metrics window for a new run."""
        self.metrics = ScraperMetrics()

    def record_success(self) -> None:
        self.metrics.successful_requests += 1
        self.metrics.total_requests += 1

    def record_failure(self, error: str) -> None:
        self.metrics.failed_requests += 1
        self.metrics.total_requests += 1
        self.metrics.errors.append(error)

    def finish_metrics(self) -> None:
        self.metrics.end_time = utcnow()
        self.metrics.duration = (self.metrics.end_time - self.metrics.start_time).total_seconds()

    def get_metrics(self) -> ScraperMetrics:
        """Return a copy of the current metrics (read-only to callers)."""
        return replace(self.metrics, errors=list(self.metrics.errors))

    async def delay(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)

    async def cleanup(self) -> None:
        """Release adapter resources. Default: nothing to release."""
