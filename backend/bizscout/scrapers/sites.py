"""Declarative per-marketplace scraping configuration.

Each marketplace is a SiteConfig entry: where to start, how to find listing
cards, which selectors and patterns pull each field, and how to detect the
next page. The generic ConfiguredSiteAdapter turns an entry into a scraper.
"""

import enum
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple
from urllib.parse import urlsplit, urlunsplit

from bizscout.scrapers.utils.normalizer import INDUSTRY_PATTERNS, ONLINE_BUSINESS_PATTERNS


class ContainerStrategy(str, enum.Enum):
    """How the container selector list is resolved.

    FIRST_MATCH stops at the first selector that matches anything.
    MOST_MATCHES tries every selector and keeps the largest match set,
    which tolerates a specific selector that only hits a featured strip.
    """

    FIRST_MATCH = "first_match"
    MOST_MATCHES = "most_matches"


DEFAULT_NAME_SELECTORS = (
    ".listing-title", ".business-name", ".opportunity-title", "h3 a", "h2 a",
    "h1", "h2", "h3", "h4", ".title", ".name", "a[title]", ".headline",
)
DEFAULT_PRICE_SELECTORS = (
    ".price", ".asking-price", ".list-price", ".sale-price", ".valuation",
    "[class*='price']", "[class*='asking']",
)
DEFAULT_REVENUE_SELECTORS = (
    ".revenue", ".annual-revenue", ".gross-revenue", ".cash-flow", ".net-profit",
    ".profit", ".income", ".earnings",
    "[class*='revenue']", "[class*='cash-flow']", "[class*='profit']", "[class*='earnings']",
)
DEFAULT_LOCATION_SELECTORS = (
    ".location", ".business-location", ".city-state", ".geography", ".region",
    "[class*='location']",
)
DEFAULT_INDUSTRY_SELECTORS = (
    ".industry", ".business-type", ".category", ".sector", ".vertical",
    "[class*='industry']", "[class*='category']",
)
DEFAULT_DESCRIPTION_SELECTORS = (
    ".description", ".business-description", ".excerpt", ".summary", ".details",
    ".overview", "[class*='description']", "[class*='summary']", "p",
)
DEFAULT_LINK_SELECTORS = (
    "a[href*='/business-for-sale/']", "a[href*='/listing']", "h3 a", "h2 a",
    ".title a", "a.view-listing", "a[href]",
)
DEFAULT_IMAGE_SELECTORS = (
    "img.listing-image", ".primary-image img", ".main-image img", ".listing-photo img",
    "img[src*='listing']", "img",
)

AMOUNT = r"\$?\s?(\d[\d,]*(?:\.\d+)?\s*(?:k|m|b|thousand|million|billion)?)(?![a-z])"

DEFAULT_PRICE_PATTERNS = (
    r"asking(?:\s+price)?[:\s]*" + AMOUNT,
    r"(\$[\d,]+(?:\.\d+)?\s*(?:k|m|b|thousand|million|billion)?)(?![a-z])",
)
DEFAULT_REVENUE_PATTERNS = (
    r"revenue[:\s]*" + AMOUNT,
    r"gross(?:\s+sales)?[:\s]*" + AMOUNT,
    r"cash\s*flow[:\s]*" + AMOUNT,
    r"income[:\s]*" + AMOUNT,
    r"profit[:\s]*" + AMOUNT,
)
MONTHLY_REVENUE_PATTERNS = (
    r"\$?(\d[\d,]*(?:\.\d+)?\s*[km]?)\s*/\s*(?:mo|month)\b",
    r"\$?(\d[\d,]*(?:\.\d+)?\s*[km]?)\s*monthly",
    r"monthly\s+(?:net\s+)?(?:revenue|profit)[:\s]*" + AMOUNT,
)
DEFAULT_LOCATION_PATTERNS = (
    r"(?i)located in ([^,.\n]+)",
    r"(?i)based in ([^,.\n]+)",
    r"\b([A-Z][a-z]+(?: [A-Z][a-z]+)*,\s*[A-Z]{2})\b",
    r"(?i)\b(United States|USA|Canada|United Kingdom|Australia|Remote|Global)\b",
)


@dataclass(frozen=True)
class SiteConfig:
    """Everything needed to scrape one marketplace."""

    slug: str
    name: str
    base_url: str
    seed_urls: Tuple[str, ...]
    # Format for pages after the first; placeholders are listed in page_url()
    page_url_format: str = "{seed}?page={page}"
    pagination_selector: Optional[str] = None  # None = single page per seed

    container_selectors: Tuple[str, ...] = ()
    container_strategy: ContainerStrategy = ContainerStrategy.FIRST_MATCH

    name_selectors: Tuple[str, ...] = DEFAULT_NAME_SELECTORS
    price_selectors: Tuple[str, ...] = DEFAULT_PRICE_SELECTORS
    revenue_selectors: Tuple[str, ...] = DEFAULT_REVENUE_SELECTORS
    # Selectors whose figure is per month; multiplied by 12
    monthly_revenue_selectors: Tuple[str, ...] = ()
    location_selectors: Tuple[str, ...] = DEFAULT_LOCATION_SELECTORS
    industry_selectors: Tuple[str, ...] = DEFAULT_INDUSTRY_SELECTORS
    description_selectors: Tuple[str, ...] = DEFAULT_DESCRIPTION_SELECTORS
    link_selectors: Tuple[str, ...] = DEFAULT_LINK_SELECTORS
    image_selectors: Tuple[str, ...] = DEFAULT_IMAGE_SELECTORS

    price_patterns: Tuple[str, ...] = DEFAULT_PRICE_PATTERNS
    revenue_patterns: Tuple[str, ...] = DEFAULT_REVENUE_PATTERNS
    monthly_revenue_patterns: Tuple[str, ...] = ()
    location_patterns: Tuple[str, ...] = DEFAULT_LOCATION_PATTERNS
    # Group 1 is the asking-price / annual-profit multiple, e.g. "3.2x profit"
    profit_multiple_pattern: Optional[str] = None

    industry_patterns: Sequence[Tuple[str, str]] = INDUSTRY_PATTERNS
    default_industry: str = "Business"
    default_location: str = ""
    fba_only: bool = False
    render_js: bool = True

    def page_url(self, seed: str, page: int) -> str:
        """URL of ``page`` for a seed.

        The format may use {seed}, {page}, and {path} / {query} (the seed
        split at "?") for sites that page inside the path.
        """
        if page <= 1:
            return seed
        parts = urlsplit(seed)
        return self.page_url_format.format(
            seed=seed,
            page=page,
            path=urlunsplit((parts.scheme, parts.netloc, parts.path, "", "")),
            query=parts.query,
        )


BIZBUYSELL = SiteConfig(
    slug="bizbuysell",
    name="BizBuySell",
    base_url="https://www.bizbuysell.com",
    seed_urls=("https://www.bizbuysell.com/businesses-for-sale/",),
    page_url_format="{seed}{page}/",
    pagination_selector=".pagination .next:not(.disabled), .pagination a[aria-label='Next']",
    container_selectors=(
        ".result-list-item",
        ".listing-item",
        ".business-listing-item",
        ".search-result",
        ".listing-card",
        ".business-card",
    ),
    container_strategy=ContainerStrategy.FIRST_MATCH,
    link_selectors=(
        "a[href*='/business-for-sale/']",
        "a[href*='/listing/']",
        "a.listing-title-link",
        "h3 a",
        "h2 a",
        ".title a",
        "a[href]",
    ),
    default_industry="Business",
)

BIZQUEST = SiteConfig(
    slug="bizquest",
    name="BizQuest",
    base_url="https://www.bizquest.com",
    seed_urls=("https://www.bizquest.com/businesses-for-sale/",),
    page_url_format="{seed}?page={page}",
    pagination_selector=".pagination .next:not(.disabled), .page-next:not(.disabled)",
    container_selectors=(
        ".listing-item",
        ".business-card",
        ".search-result",
        ".business-listing",
        ".result",
        "article",
    ),
    container_strategy=ContainerStrategy.FIRST_MATCH,
    name_selectors=(".business-name", ".listing-title", "h3", "h2"),
    location_selectors=(".location", ".city-state", ".geography"),
    link_selectors=("a[href*='/business-for-sale/']", "a[href]"),
    default_industry="Business",
)

EMPIRE_FLIPPERS = SiteConfig(
    slug="empireflippers",
    name="Empire Flippers",
    base_url="https://empireflippers.com",
    seed_urls=("https://empireflippers.com/marketplace",),
    page_url_format="{seed}/page/{page}",
    pagination_selector=".pagination .next",
    container_selectors=(
        ".ef-marketplace-listing",
        ".listing",
        ".listing-container",
        ".business-card",
        "article",
        ".card",
    ),
    container_strategy=ContainerStrategy.MOST_MATCHES,
    name_selectors=(".ef-listing-title", ".listing-title", ".title", "h2", "h3", "h4", ".name"),
    price_selectors=(".ef-listing-price", ".listing-price", ".price", "[data-label='Asking Price:']"),
    revenue_selectors=(".annual-revenue",),
    monthly_revenue_selectors=(".monthly-revenue", ".revenue"),
    description_selectors=(
        ".ef-listing-description", ".listing-description", ".description",
        ".summary", ".excerpt", ".content",
    ),
    link_selectors=(".ef-listing-title a", "a[href*='listing']", "a[href*='business']", "a[href]"),
    monthly_revenue_patterns=MONTHLY_REVENUE_PATTERNS,
    default_industry="Online Business",
    default_location="Unknown",
)

QUIETLIGHT = SiteConfig(
    slug="quietlight",
    name="QuietLight",
    base_url="https://quietlight.com",
    seed_urls=("https://quietlight.com/listings/",),
    page_url_format="{seed}page/{page}/",
    pagination_selector=".pagination .next, a.next.page-numbers, .nav-links .next",
    container_selectors=(
        "article.business-card",
        ".business-listing",
        ".listing-item",
        ".business-card",
        "article",
        ".post",
        ".opportunity-card",
    ),
    container_strategy=ContainerStrategy.FIRST_MATCH,
    revenue_selectors=(
        ".revenue", ".annual-revenue", ".net-profit", ".earnings", ".sde",
        "[class*='revenue']", "[class*='profit']",
    ),
    default_industry="Online Business",
)

QUIETLIGHT_FBA = SiteConfig(
    slug="quietlight-fba",
    name="QuietLight",
    base_url="https://quietlight.com",
    seed_urls=("https://quietlight.com/amazon-fba-businesses-for-sale/",),
    page_url_format="{seed}page/{page}/",
    pagination_selector=".pagination .next, a.next.page-numbers, .nav-links .next",
    container_selectors=QUIETLIGHT.container_selectors,
    container_strategy=ContainerStrategy.FIRST_MATCH,
    revenue_selectors=QUIETLIGHT.revenue_selectors,
    industry_patterns=ONLINE_BUSINESS_PATTERNS,
    default_industry="Amazon FBA",
    fba_only=True,
)

FLIPPA = SiteConfig(
    slug="flippa",
    name="Flippa",
    base_url="https://flippa.com",
    seed_urls=(
        "https://flippa.com/search?filter_category=website",
        "https://flippa.com/search?filter_category=app",
    ),
    page_url_format="{seed}&page={page}",
    pagination_selector="a[rel='next'], .pagination .next:not(.disabled)",
    container_selectors=(
        ".listing-card",
        ".auction-card",
        ".business-card",
        "[class*='listing-card']",
        "[class*='auction']",
    ),
    container_strategy=ContainerStrategy.FIRST_MATCH,
    name_selectors=("h2", "h3", "h4", ".title", ".listing-title", ".auction-title"),
    price_selectors=(".price", ".current-bid", ".asking-price", ".bid-amount", "[class*='price']"),
    revenue_selectors=(".revenue", ".profit", "[class*='revenue']"),
    monthly_revenue_selectors=(".monthly-revenue",),
    description_selectors=(".description", ".summary", ".excerpt", "p"),
    link_selectors=("a[href]",),
    monthly_revenue_patterns=MONTHLY_REVENUE_PATTERNS,
    industry_patterns=ONLINE_BUSINESS_PATTERNS,
    default_industry="Online Business",
    default_location="Global",
)

ACQUIRE = SiteConfig(
    slug="acquire",
    name="Acquire.com",
    base_url="https://acquire.com",
    seed_urls=("https://acquire.com/",),
    pagination_selector=None,
    container_selectors=(
        "a[href*='app.acquire.com/startup']",
        "[class*='listing-card']",
        "[class*='startup-card']",
    ),
    container_strategy=ContainerStrategy.MOST_MATCHES,
    price_patterns=(r"asking price\s*\$?([\d.,]+\s*[km]?)(?![a-z])",) + DEFAULT_PRICE_PATTERNS,
    profit_multiple_pattern=r"([\d.]+)x\s+profit",
    location_patterns=(
        r"(?i)\b(united states|sweden|united arab emirates|usa|uk|canada|germany|australia)\b",
    ) + DEFAULT_LOCATION_PATTERNS,
    default_industry="Technology",
    default_location="Global",
)


EXITADVISER = SiteConfig(
    slug="exitadviser",
    name="ExitAdviser",
    base_url="https://exitadviser.com",
    seed_urls=(
        "https://exitadviser.com/find-a-business"
        "?category=ecommerce&keywords=amazon+fba+ecommerce+marketplace+online+retail",
    ),
    page_url_format="{path}/page-{page}?{query}",
    pagination_selector=".pagination .next, a.next, .pagination-next, a[rel='next']",
    container_selectors=(
        ".search-result",
        ".business-listing",
        ".listing-item",
        ".company-item",
        ".business-card",
        "[data-listing]",
        "article.listing",
    ),
    container_strategy=ContainerStrategy.MOST_MATCHES,
    name_selectors=("h1", "h2", "h3", ".title", ".listing-title", "[data-title]", "strong"),
    price_selectors=(".price", ".listing-price", "[data-price]", ".amount"),
    location_selectors=(".location", ".listing-location", "[data-location]"),
    industry_selectors=(".category", ".industry", ".business-type", "[data-category]"),
    description_selectors=(".description", ".listing-description", "p"),
    link_selectors=("a[href]",),
    default_industry="Business",
)

# Marketwatch aggregates other brokers' listings into one table, one row per
# listing: added, heading, business model, niche, asking price, gross
# revenue, net revenue, inventory, multiple, R-index, provider
CENTURICA = SiteConfig(
    slug="centurica",
    name="Centurica",
    base_url="https://app.centurica.com",
    seed_urls=("https://app.centurica.com/marketwatch",),
    pagination_selector=None,
    container_selectors=("#table-listings tbody tr", "#table-listings tr"),
    container_strategy=ContainerStrategy.FIRST_MATCH,
    name_selectors=("td:nth-of-type(2) a", "td:nth-of-type(2)"),
    price_selectors=("td:nth-of-type(5)",),
    revenue_selectors=("td:nth-of-type(6)", "td:nth-of-type(7)"),
    location_selectors=(),
    industry_selectors=("td:nth-of-type(4)", "td:nth-of-type(3)"),
    description_selectors=(),
    link_selectors=("td:nth-of-type(2) a[href]",),
    image_selectors=(),
    # Cells are positional; free-text patterns would pick up the wrong column
    price_patterns=(),
    revenue_patterns=(),
    location_patterns=(),
    industry_patterns=ONLINE_BUSINESS_PATTERNS,
    default_industry="Online Business",
    default_location="Various",
)


SITE_CONFIGS: Dict[str, SiteConfig] = {
    site.slug: site
    for site in (
        BIZBUYSELL,
        BIZQUEST,
        EMPIRE_FLIPPERS,
        QUIETLIGHT,
        QUIETLIGHT_FBA,
        FLIPPA,
        ACQUIRE,
        EXITADVISER,
        CENTURICA,
    )
}
