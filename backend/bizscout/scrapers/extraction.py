"""Extraction engine: listing cards and fields out of unpredictable HTML.

Two levels of fallback. Container selection walks a site's selector list
(first match or most matches, per site), then a heading + link + price
heuristic. Field extraction walks per-field selectors, then regexes over
the card's full text.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Pattern, Sequence, Tuple

import structlog
from bs4 import BeautifulSoup, Tag

from bizscout.core.exceptions import ExtractionError
from bizscout.scrapers.base import RawListing
from bizscout.scrapers.sites import ContainerStrategy, SiteConfig
from bizscout.scrapers.utils.normalizer import (
    AmountResult,
    Clamped,
    FBAFilter,
    HighlightExtractor,
    IndustryClassifier,
    Rejected,
    absolute_url,
    clamp_amount,
    clean_text,
    normalize_url,
    parse_amount,
)

logger = structlog.get_logger(__name__)


HEURISTIC_SELECTOR = "heuristic"
GENERIC_CONTAINERS = ("div", "article", "li", "section")
HEADINGS = ("h1", "h2", "h3", "h4", "h5", "h6")
_PRICE_HINT_RE = re.compile(r"[$€£]|\bprice\b", re.IGNORECASE)
_DIGIT_RE = re.compile(r"\d")


@dataclass
class ExtractionReport:
    """What one page produced, including what was thrown away and why."""

    listings: List[RawListing] = field(default_factory=list)
    selector: Optional[str] = None
    candidates: int = 0
    discarded: int = 0
    filtered: int = 0
    duplicates: int = 0
    failed: int = 0
    clamped: int = 0


class ExtractionEngine:
    """Turns one site's HTML into RawListing records."""

    # A zero-price, zero-revenue card needs at least this much description
    MIN_DESCRIPTION_LENGTH = 50
    MIN_NAME_LENGTH = 4
    MAX_NAME_LENGTH = 500
    MAX_DESCRIPTION_LENGTH = 2000

    def __init__(self, site: SiteConfig):
        self.site = site
        self.classifier = IndustryClassifier(site.industry_patterns, default=site.default_industry)
        self.highlighter = HighlightExtractor()
        self.fba_filter = FBAFilter() if site.fba_only else None

        self._price_patterns = self._compile(site.price_patterns)
        self._revenue_patterns = self._compile(site.revenue_patterns)
        self._monthly_patterns = self._compile(site.monthly_revenue_patterns)
        # Location patterns carry their own inline flags
        self._location_patterns = [re.compile(p) for p in site.location_patterns]
        self._multiple_pattern = (
            re.compile(site.profit_multiple_pattern, re.IGNORECASE)
            if site.profit_multiple_pattern else None
        )
        self.logger = logger.bind(adapter=site.slug)

    @staticmethod
    def _compile(patterns: Sequence[str]) -> List[Pattern]:
        return [re.compile(p, re.IGNORECASE) for p in patterns]

    # ------------------------------------------------------------------
    # Page level
    # ------------------------------------------------------------------

    @staticmethod
    def parse(html: str) -> BeautifulSoup:
        return BeautifulSoup(html or "", "html.parser")

    def has_next_page(self, soup: BeautifulSoup) -> bool:
        """True when the site's "next" pagination control is present."""
        if not self.site.pagination_selector:
            return False
        return soup.select_one(self.site.pagination_selector) is not None

    def select_containers(self, soup: BeautifulSoup) -> Tuple[List[Tag], Optional[str]]:
        """Find listing cards using the site's strategy, then the heuristic.

        Returns:
            (containers, selector that produced them); selector is
            "heuristic" for the fallback pass and None when nothing matched
        """
        best: List[Tag] = []
        best_selector: Optional[str] = None

        for selector in self.site.container_selectors:
            matches = soup.select(selector)
            if not matches:
                continue
            if self.site.container_strategy == ContainerStrategy.FIRST_MATCH:
                return matches, selector
            if len(matches) > len(best):
                best, best_selector = matches, selector

        if best:
            return best, best_selector

        heuristic = self.heuristic_containers(soup)
        if heuristic:
            return heuristic, HEURISTIC_SELECTOR
        return [], None

    @staticmethod
    def heuristic_containers(soup: BeautifulSoup) -> List[Tag]:
        """Generic elements holding a heading, a link and a price hint.

        Only the innermost qualifying elements are kept so a wrapper around
        several cards is not mistaken for a card itself.
        """
        qualifying = [
            el for el in soup.find_all(GENERIC_CONTAINERS)
            if el.find(HEADINGS) is not None
            and el.find("a", href=True) is not None
            and _PRICE_HINT_RE.search(el.get_text(" "))
        ]
        ids = {id(el) for el in qualifying}
        return [
            el for el in qualifying
            if not any(id(child) in ids for child in el.find_all(GENERIC_CONTAINERS))
        ]

    def extract(self, html: str) -> ExtractionReport:
        """Extract all listings from one page of HTML. Never raises."""
        return self.extract_from_soup(self.parse(html))

    def extract_from_soup(self, soup: BeautifulSoup) -> ExtractionReport:
        containers, selector = self.select_containers(soup)
        report = ExtractionReport(selector=selector, candidates=len(containers))

        if selector == HEURISTIC_SELECTOR:
            self.logger.info("container_heuristic_fallback", count=len(containers))
        elif selector is None:
            self.logger.warning("no_listing_containers_found")
        else:
            self.logger.debug("containers_selected", selector=selector, count=len(containers))

        seen = set()
        for index, container in enumerate(containers):
            try:
                listing, clamped = self.extract_listing(container)
            except Exception as e:
                report.failed += 1
                self.logger.warning("listing_extraction_failed", index=index, error=str(e))
                continue

            report.clamped += clamped
            if listing is None:
                report.discarded += 1
                continue
            if self.fba_filter and not self.fba_filter.matches(listing.name, listing.description):
                report.filtered += 1
                continue

            key = (listing.name, listing.original_url)
            if key in seen:
                report.duplicates += 1
                continue
            seen.add(key)
            report.listings.append(listing)

        return report

    # ------------------------------------------------------------------
    # Card level
    # ------------------------------------------------------------------

    def extract_listing(self, container: Tag) -> Tuple[Optional[RawListing], int]:
        """Extract one card.

        Returns:
            (listing or None when the card is not worth keeping, number of
            amounts that had to be clamped)

        Raises:
            ExtractionError: If the card produced an invalid record
        """
        full_text = clean_text(container.get_text(" "))

        name = self._extract_name(container)
        if not name or len(name) < self.MIN_NAME_LENGTH:
            return None, 0

        description = self._first_text(
            container, self.site.description_selectors, lambda t: len(t) > 20
        )
        description = description[: self.MAX_DESCRIPTION_LENGTH] if description else None

        price = self._extract_price(container, full_text)
        revenue = self._extract_revenue(container, full_text)
        if self._multiple_pattern and revenue.value == 0 and price.value > 0:
            revenue = self._revenue_from_multiple(price.value, full_text) or revenue
        clamped = sum(1 for r in (price, revenue) if isinstance(r, Clamped))

        if (
            price.value == 0
            and revenue.value == 0
            and len(description or "") < self.MIN_DESCRIPTION_LENGTH
        ):
            return None, clamped

        context = f"{name} {description or ''}"
        industry_label = self._first_text(
            container, self.site.industry_selectors, lambda t: 0 < len(t) <= 100
        )
        industry = (
            self.classifier.normalize(industry_label, context)
            if industry_label else self.classifier.classify(context)
        )

        try:
            listing = RawListing(
                name=name[: self.MAX_NAME_LENGTH],
                source=self.site.name,
                asking_price=price.value,
                annual_revenue=revenue.value,
                industry=industry,
                location=self._extract_location(container, full_text),
                description=description,
                highlights=self.highlighter.extract(context),
                image_url=self._extract_image(container),
                original_url=self._extract_url(container),
            )
        except ValueError as e:
            raise ExtractionError(self.site.name, str(e)) from e

        return listing, clamped

    def _first_text(
        self,
        container: Tag,
        selectors: Sequence[str],
        accept: Callable[[str], bool] = bool,
    ) -> str:
        for selector in selectors:
            el = container.select_one(selector)
            if el is None:
                continue
            text = clean_text(el.get_text(" ")) or clean_text(el.get("title"))
            if text and accept(text):
                return text
        return ""

    def _extract_name(self, container: Tag) -> str:
        name = self._first_text(
            container, self.site.name_selectors, lambda t: len(t) >= self.MIN_NAME_LENGTH
        )
        if name:
            return name

        # Fall back to the first link's text (or the card itself if it is a link)
        link = container if container.name == "a" else container.find("a")
        if link is not None:
            return clean_text(link.get_text(" ")) or clean_text(link.get("title"))
        return ""

    def _search(self, patterns: Sequence[Pattern], text: str) -> Optional[str]:
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                return match.group(1)
        return None

    def _extract_price(self, container: Tag, full_text: str) -> AmountResult:
        text = self._first_text(
            container, self.site.price_selectors, lambda t: _DIGIT_RE.search(t) is not None
        )
        if text:
            result = parse_amount(text)
            if not isinstance(result, Rejected):
                return result

        found = self._search(self._price_patterns, full_text)
        return parse_amount(found)

    def _annualize(self, result: AmountResult) -> AmountResult:
        if isinstance(result, Rejected):
            return result
        original = result.original if isinstance(result, Clamped) else result.value
        return clamp_amount(original * 12)

    def _revenue_from_text(self, text: str) -> AmountResult:
        monthly = self._search(self._monthly_patterns, text)
        if monthly:
            return self._annualize(parse_amount(monthly))
        return parse_amount(text)

    def _extract_revenue(self, container: Tag, full_text: str) -> AmountResult:
        has_digit = lambda t: _DIGIT_RE.search(t) is not None  # noqa: E731

        text = self._first_text(container, self.site.monthly_revenue_selectors, has_digit)
        if text:
            result = self._annualize(parse_amount(text))
            if result.value > 0:
                return result

        text = self._first_text(container, self.site.revenue_selectors, has_digit)
        if text:
            result = self._revenue_from_text(text)
            if result.value > 0:
                return result

        monthly = self._search(self._monthly_patterns, full_text)
        if monthly:
            return self._annualize(parse_amount(monthly))

        return parse_amount(self._search(self._revenue_patterns, full_text))

    def _revenue_from_multiple(self, price: int, full_text: str) -> Optional[AmountResult]:
        match = self._multiple_pattern.search(full_text)
        if not match:
            return None
        try:
            multiple = float(match.group(1))
        except ValueError:
            return None
        if multiple <= 0:
            return None
        return clamp_amount(int(price / multiple))

    def _extract_location(self, container: Tag, full_text: str) -> str:
        location = self._first_text(
            container, self.site.location_selectors, lambda t: len(t) <= 200
        )
        if not location:
            location = clean_text(self._search(self._location_patterns, full_text))
        return location or self.site.default_location

    def _extract_url(self, container: Tag) -> Optional[str]:
        candidates = []
        if container.name == "a":
            candidates.append(container.get("href"))
        for selector in self.site.link_selectors:
            el = container.select_one(selector)
            if el is not None:
                candidates.append(el.get("href"))

        for href in candidates:
            url = absolute_url(href, self.site.base_url)
            if url:
                return normalize_url(url)
        return None

    def _extract_image(self, container: Tag) -> Optional[str]:
        for selector in self.site.image_selectors:
            img = container.select_one(selector)
            if img is None:
                continue
            for attr in ("src", "data-src", "data-original", "data-lazy-src"):
                url = absolute_url(img.get(attr), self.site.base_url)
                if url:
                    return url
        return None
