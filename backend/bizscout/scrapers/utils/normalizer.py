"""Data normalization utilities: amount parsing, industry classification, highlights."""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import List, Optional, Sequence, Tuple, Union
from urllib.parse import urljoin, urlparse, parse_qs, urlencode, urlunparse

import structlog

logger = structlog.get_logger(__name__)


# Largest amount the store's integer columns accept (signed 32-bit)
MAX_STORED_AMOUNT = 2_147_483_647

MAGNITUDES = {
    "k": 1_000,
    "thousand": 1_000,
    "m": 1_000_000,
    "mm": 1_000_000,
    "million": 1_000_000,
    "b": 1_000_000_000,
    "billion": 1_000_000_000,
}

_AMOUNT_RE = re.compile(
    r"(\d[\d,]*(?:\.\d+)?|\.\d+)\s*(thousand|million|billion|mm|k|m|b)?(?![a-z])",
    re.IGNORECASE,
)

# "$1,234", "$1,234.56", "$1.2M", "$950 K"
DOLLAR_AMOUNT_RE = re.compile(
    r"\$\s?\d[\d,]*(?:\.\d+)?(?:\s*(?:thousand|million|billion|mm|k|m|b)(?![a-z]))?",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Tagged amount results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Valid:
    """Amount parsed and within range."""

    value: int


@dataclass(frozen=True)
class Clamped:
    """Amount parsed but above MAX_STORED_AMOUNT; value is the bound."""

    value: int
    original: int


@dataclass(frozen=True)
class Rejected:
    """Text held no usable amount; value is always 0."""

    raw: str
    value: int = 0


AmountResult = Union[Valid, Clamped, Rejected]


def clamp_amount(value: int) -> AmountResult:
    """Clamp an already-numeric amount into the storable range."""
    if value < 0:
        return Rejected(raw=str(value))
    if value > MAX_STORED_AMOUNT:
        return Clamped(value=MAX_STORED_AMOUNT, original=value)
    return Valid(value=value)


def parse_amount(raw: Optional[str]) -> AmountResult:
    """Parse a money string into a whole-dollar amount.

    Handles:
    - "$45,000" -> Valid(45000)
    - "$950K" -> Valid(950000)
    - "$1.2M" / "1.2 million" -> Valid(1200000)
    - "Revenue (2023): $1.2M" -> Valid(1200000)
    - "$5B" -> Clamped(2147483647, 5000000000)
    - "Not disclosed" -> Rejected

    A "$"-prefixed amount wins over any bare number earlier in the text.

    Args:
        raw: Raw text containing an amount

    Returns:
        Valid, Clamped or Rejected
    """
    if not raw:
        return Rejected(raw=raw or "")

    dollar = DOLLAR_AMOUNT_RE.search(raw)
    match = _AMOUNT_RE.search(dollar.group(0) if dollar else raw)
    if not match:
        return Rejected(raw=raw)

    number = match.group(1).replace(",", "")
    suffix = (match.group(2) or "").lower()

    try:
        amount = Decimal(number)
    except InvalidOperation:
        return Rejected(raw=raw)

    amount *= MAGNITUDES.get(suffix, 1)
    return clamp_amount(int(amount.to_integral_value(rounding=ROUND_FLOOR)))


# ---------------------------------------------------------------------------
# Industry classification
# ---------------------------------------------------------------------------

# Ordered: first matching category wins
INDUSTRY_PATTERNS: Sequence[Tuple[str, str]] = (
    ("SaaS", r"\b(saas|software|subscriptions?|platform|app)\b"),
    ("E-commerce", r"\b(ecommerce|e-commerce|shopify|online stores?|retail|dropship\w*|amazon|fba)\b"),
    ("Content", r"\b(blogs?|content|media|newsletters?|publications?|youtube)\b"),
    ("Technology", r"\b(tech|technology|ai|automation|api|development|it services)\b"),
    ("Health", r"\b(health|healthcare|medical|wellness|fitness|supplements?|dental|clinic)\b"),
    ("Education", r"\b(education|learning|courses?|training|schools?|tutoring)\b"),
    ("Finance", r"\b(finance|financial|fintech|payments?|trading|crypto|insurance|accounting)\b"),
    ("Food & Beverage", r"\b(food|restaurants?|beverages?|cafe|coffee|kitchen|bakery|catering|bar)\b"),
    ("Manufacturing", r"\b(manufactur\w*|factory|fabrication|machining|production)\b"),
    ("Services", r"\b(services?|consulting|agency|cleaning|landscaping|plumbing|hvac|staffing)\b"),
    ("Real Estate", r"\b(real estate|property|properties|rentals?)\b"),
    ("Automotive", r"\b(auto|automotive|car wash|collision|tires?)\b"),
)

# Online-asset marketplaces (Flippa, Empire Flippers) split things differently
ONLINE_BUSINESS_PATTERNS: Sequence[Tuple[str, str]] = (
    ("Amazon FBA", r"\b(amazon|fba|fulfillment)\b"),
    ("E-commerce", r"\b(ecommerce|e-commerce|shopify|store|retail|dropship\w*)\b"),
    ("SaaS", r"\b(saas|software|platform|subscription|app)\b"),
    ("Content", r"\b(blog|content|media|newsletter|publication|youtube|instagram)\b"),
    ("Affiliate", r"\b(affiliate|commission|referral)\b"),
    ("Technology", r"\b(tech|ai|automation|api|development|mobile)\b"),
    ("Cryptocurrency", r"\b(crypto|bitcoin|blockchain|nft|defi)\b"),
    ("Gaming", r"\b(gaming|game|esports|twitch)\b"),
    ("Domain", r"\b(domain|website|url)\b"),
)


class IndustryClassifier:
    """Maps free text onto a fixed industry taxonomy by ordered regex."""

    def __init__(
        self,
        patterns: Sequence[Tuple[str, str]] = INDUSTRY_PATTERNS,
        default: str = "Business",
    ):
        self.patterns = [(category, re.compile(p, re.IGNORECASE)) for category, p in patterns]
        self.default = default

    def classify(self, text: Optional[str]) -> str:
        """Return the first matching category, or the default."""
        return self.match(text) or self.default

    def match(self, text: Optional[str]) -> Optional[str]:
        if not text:
            return None
        for category, pattern in self.patterns:
            if pattern.search(text):
                return category
        return None

    def normalize(self, raw_label: Optional[str], context: Optional[str] = None) -> str:
        """Normalize a scraped category label.

        Tries the label against the taxonomy, then the surrounding text,
        then keeps a short cleaned label, then falls back to the default.
        """
        label = clean_text(raw_label)
        category = self.match(label) or self.match(context)
        if category:
            return category
        if label and len(label) <= 60:
            return label
        return self.default


# ---------------------------------------------------------------------------
# Highlights and domain filters
# ---------------------------------------------------------------------------

HIGHLIGHT_RULES: Sequence[Tuple[str, str]] = (
    ("Profitable business", r"\bprofitable\b"),
    ("Established business", r"\b(established|\d+\+?\s*years? (?:old|in business))\b"),
    ("Growing business", r"\b(growing|growth)\b"),
    ("Turnkey operation", r"\bturn-?key\b"),
    ("Strong cash flow", r"\bcash\s*flow\b"),
    ("Equipment/inventory included", r"\b(equipment|inventory)\b"),
)


class HighlightExtractor:
    """Derives short tags from description text, one per rule."""

    def __init__(self, rules: Sequence[Tuple[str, str]] = HIGHLIGHT_RULES, limit: int = 3):
        self.rules = [(tag, re.compile(p, re.IGNORECASE)) for tag, p in rules]
        self.limit = limit

    def extract(self, text: Optional[str]) -> List[str]:
        if not text:
            return []
        tags: List[str] = []
        for tag, pattern in self.rules:
            if len(tags) >= self.limit:
                break
            if pattern.search(text):
                tags.append(tag)
        return tags


FBA_KEYWORDS = (
    "amazon",
    "fba",
    "fulfillment by amazon",
    "amazon seller",
    "private label",
    "e-commerce",
    "ecommerce",
    "shopify",
)


class FBAFilter:
    """Allowlist filter for Amazon FBA / e-commerce listings."""

    def __init__(self, keywords: Sequence[str] = FBA_KEYWORDS):
        self.keywords = tuple(k.lower() for k in keywords)

    def matches(self, title: Optional[str], description: Optional[str] = None) -> bool:
        text = f"{title or ''} {description or ''}".lower()
        return any(keyword in text for keyword in self.keywords)


# ---------------------------------------------------------------------------
# Text and URL helpers
# ---------------------------------------------------------------------------

_WHITESPACE_RE = re.compile(r"\s+")


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace and strip."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def _is_valid_url(url: Optional[str]) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def absolute_url(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve href against base_url, None for non-navigable links."""
    if not href:
        return None
    href = href.strip()
    if href.startswith(("#", "javascript:", "mailto:", "tel:", "data:")):
        return None
    url = urljoin(base_url, href)
    return url if _is_valid_url(url) else None


def normalize_url(url: str) -> str:
    """Normalize a URL by removing tracking parameters.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    if not url:
        return url

    tracking_params = [
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_content",
        "utm_term",
        "ref",
        "fbclid",
        "gclid",
        "mc_cid",
        "mc_eid",
    ]

    parsed = urlparse(url)
    query_params = parse_qs(parsed.query)

    filtered_params = {
        k: v for k, v in query_params.items() if k not in tracking_params
    }

    new_query = urlencode(filtered_params, doseq=True)

    return urlunparse(
        (parsed.scheme, parsed.netloc, parsed.path, parsed.params, new_query, "")
    )
