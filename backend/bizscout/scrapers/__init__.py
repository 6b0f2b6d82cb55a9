"""Scraper system for collecting business-for-sale listings from marketplaces.

This package provides:
- The adapter contract and the data structures adapters return
- A fetch layer that goes through a rendering proxy
- An extraction engine driven by per-site declarative configuration
- Factory, orchestration service and scheduler
"""

from .base import (
    BaseAdapter,
    RawListing,
    ScraperMetrics,
    ScrapingConfig,
    ScrapingResult,
)
from .factory import AdapterFactory, get_adapter_factory

__all__ = [
    # Base classes
    "BaseAdapter",
    # Data structures
    "RawListing",
    "ScrapingResult",
    "ScrapingConfig",
    "ScraperMetrics",
    # Factory
    "AdapterFactory",
    "get_adapter_factory",
]
