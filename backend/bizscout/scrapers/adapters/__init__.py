"""Marketplace adapter implementations.

Marketplaces are described as SiteConfig entries (see bizscout.scrapers.sites)
and scraped by the generic ConfiguredSiteAdapter.
"""

from .configured import ConfiguredSiteAdapter

__all__ = [
    "ConfiguredSiteAdapter",
]
