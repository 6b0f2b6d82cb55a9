"""Tests for amount parsing, classification, highlights and the FBA filter."""

import pytest

from bizscout.scrapers.base import RawListing
from bizscout.scrapers.utils import (
    MAX_STORED_AMOUNT,
    Clamped,
    FBAFilter,
    HighlightExtractor,
    IndustryClassifier,
    ONLINE_BUSINESS_PATTERNS,
    Rejected,
    Valid,
    absolute_url,
    clamp_amount,
    clean_text,
    normalize_url,
    parse_amount,
)


# ============================================================================
# AMOUNTS
# ============================================================================

class TestParseAmount:
    """Tests for parse_amount and clamp_amount."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("$1.2M", 1_200_000),
            ("$950K", 950_000),
            ("$45,000", 45_000),
            ("1.2 million", 1_200_000),
            ("$750 thousand", 750_000),
            ("$1,250,000.99", 1_250_000),
            ("Asking Price: $2.5m", 2_500_000),
            ("$500 Monthly", 500),
        ],
    )
    def test_valid_amounts(self, raw, expected):
        result = parse_amount(raw)
        assert isinstance(result, Valid)
        assert result.value == expected

    def test_amount_above_bound_is_clamped(self):
        result = parse_amount("$5B")

        assert isinstance(result, Clamped)
        assert result.value == MAX_STORED_AMOUNT
        assert result.original == 5_000_000_000

    @pytest.mark.parametrize("raw", [None, "", "Not disclosed", "Contact broker"])
    def test_unusable_text_is_rejected(self, raw):
        result = parse_amount(raw)
        assert isinstance(result, Rejected)
        assert result.value == 0

    def test_clamp_amount(self):
        assert clamp_amount(10) == Valid(10)
        assert clamp_amount(MAX_STORED_AMOUNT) == Valid(MAX_STORED_AMOUNT)
        assert isinstance(clamp_amount(MAX_STORED_AMOUNT + 1), Clamped)
        assert isinstance(clamp_amount(-5), Rejected)

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Revenue (2023): $1.2M", 1_200_000),
            ("Established 1998, asking $450,000", 450_000),
            ("TTM 12 months: $ 85K", 85_000),
        ],
    )
    def test_dollar_amount_preferred_over_earlier_number(self, raw, expected):
        assert parse_amount(raw) == Valid(expected)

    def test_bare_number_used_without_dollar_amount(self):
        assert parse_amount("Revenue 2023") == Valid(2023)
        assert parse_amount("Cash flow 250K") == Valid(250_000)


# ============================================================================
# CLASSIFICATION
# ============================================================================

class TestIndustryClassifier:
    """Tests for the ordered regex industry classifier."""

    def test_shopify_is_ecommerce(self):
        classifier = IndustryClassifier()
        assert classifier.classify("Shopify store selling pet supplies") == "E-commerce"

    def test_saas_is_saas(self):
        classifier = IndustryClassifier()
        assert classifier.classify("B2B SaaS for dentists") == "SaaS"

    def test_no_keyword_falls_back_to_default(self):
        assert IndustryClassifier().classify("Family-owned laundromat") == "Business"
        assert IndustryClassifier(default="Other").classify("Family-owned laundromat") == "Other"
        assert IndustryClassifier().classify(None) == "Business"

    def test_first_match_wins(self):
        # Both SaaS and E-commerce keywords present; SaaS is listed first
        assert IndustryClassifier().classify("Software for Shopify merchants") == "SaaS"

    def test_online_taxonomy_puts_fba_first(self):
        classifier = IndustryClassifier(ONLINE_BUSINESS_PATTERNS, default="Online Business")
        assert classifier.classify("Amazon FBA store in the kitchen niche") == "Amazon FBA"
        assert classifier.classify("Affiliate site for hiking gear") == "Affiliate"
        assert classifier.classify("Something else entirely") == "Online Business"

    def test_normalize_label(self):
        classifier = IndustryClassifier()
        assert classifier.normalize("Software & SaaS") == "SaaS"
        assert classifier.normalize("Laundromat") == "Laundromat"
        assert classifier.normalize("", context="online store") == "E-commerce"
        assert classifier.normalize(None) == "Business"
        assert classifier.normalize("Restaurants & Food") == "Food & Beverage"
        assert IndustryClassifier(default="Other").normalize("x" * 80) == "Other"


class TestHighlightExtractor:
    """Tests for highlight tags."""

    def test_caps_at_three_in_rule_order(self):
        text = "Profitable, established turnkey business with strong cash flow and growing sales"
        tags = HighlightExtractor().extract(text)

        assert tags == ["Profitable business", "Established business", "Growing business"]

    def test_each_rule_contributes_once(self):
        tags = HighlightExtractor().extract("profitable profitable PROFITABLE")
        assert tags == ["Profitable business"]

    def test_empty_text(self):
        assert HighlightExtractor().extract(None) == []


class TestFBAFilter:
    """Tests for the FBA allowlist."""

    def test_matches_title_or_description(self):
        fba = FBAFilter()
        assert fba.matches("Amazon FBA supplement brand")
        assert fba.matches("Kitchen brand", "Private label products sold on Amazon")
        assert fba.matches("Shopify Store")

    def test_rejects_unrelated(self):
        assert not FBAFilter().matches("Local plumbing company", "Serving the metro area")


# ============================================================================
# TEXT AND URLS
# ============================================================================

class TestTextHelpers:
    def test_clean_text(self):
        assert clean_text("  Coffee \n\t Shop  ") == "Coffee Shop"
        assert clean_text(None) == ""

    def test_absolute_url(self):
        base = "https://www.bizbuysell.com"
        assert (
            absolute_url("/business-for-sale/cafe/123/", base)
            == "https://www.bizbuysell.com/business-for-sale/cafe/123/"
        )
        assert absolute_url("javascript:void(0)", base) is None
        assert absolute_url("#top", base) is None
        assert absolute_url(None, base) is None

    def test_normalize_url_strips_tracking(self):
        url = "https://flippa.com/123?utm_source=x&page=2&gclid=abc"
        assert normalize_url(url) == "https://flippa.com/123?page=2"


# ============================================================================
# RAW LISTING
# ============================================================================

class TestRawListing:
    def test_highlights_deduplicated_and_capped(self):
        listing = RawListing(
            name="Test Business",
            source="BizBuySell",
            highlights=["a", "b", "a", "c", "d"],
        )
        assert listing.highlights == ["a", "b", "c"]

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            RawListing(name="Test Business", source="BizBuySell", asking_price=-1)

    def test_name_required(self):
        with pytest.raises(ValueError):
            RawListing(name="", source="BizBuySell")

    def test_to_dict_uses_camel_case(self):
        data = RawListing(name="Test Business", source="Flippa", asking_price=10).to_dict()
        assert data["askingPrice"] == 10
        assert data["annualRevenue"] == 0
        assert "scrapedAt" in data
