"""Scraper utilities for rate limiting and data normalization."""

from .rate_limiter import DomainRateLimiter, TokenBucket
from .normalizer import (
    MAX_STORED_AMOUNT,
    AmountResult,
    Clamped,
    FBAFilter,
    HighlightExtractor,
    IndustryClassifier,
    INDUSTRY_PATTERNS,
    ONLINE_BUSINESS_PATTERNS,
    Rejected,
    Valid,
    absolute_url,
    clean_text,
    clamp_amount,
    normalize_url,
    parse_amount,
)


__all__ = [
    # Rate limiting
    "DomainRateLimiter",
    "TokenBucket",
    # Amounts
    "MAX_STORED_AMOUNT",
    "AmountResult",
    "Valid",
    "Clamped",
    "Rejected",
    "parse_amount",
    "clamp_amount",
    # Classification
    "IndustryClassifier",
    "INDUSTRY_PATTERNS",
    "ONLINE_BUSINESS_PATTERNS",
    "HighlightExtractor",
    "FBAFilter",
    # Text / URLs
    "clean_text",
    "absolute_url",
    "normalize_url",
]
