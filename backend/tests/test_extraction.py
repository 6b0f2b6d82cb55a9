"""Tests for the extraction engine: container selection and field fallbacks."""

from bizscout.scrapers.extraction import HEURISTIC_SELECTOR, ExtractionEngine
from bizscout.scrapers.sites import (
    ACQUIRE,
    BIZBUYSELL,
    CENTURICA,
    EMPIRE_FLIPPERS,
    EXITADVISER,
    FLIPPA,
    QUIETLIGHT_FBA,
    ContainerStrategy,
    SiteConfig,
)


# ============================================================================
# FIXTURES (inline HTML)
# ============================================================================

BIZBUYSELL_PAGE = """
<html><body>
<div class="results">
  <div class="result-list-item">
    <h3 class="listing-title">
      <a href="/business-for-sale/coffee-shop/123/?utm_source=newsletter">Profitable Coffee Shop</a>
    </h3>
    <div class="price">$450,000</div>
    <div class="cash-flow">Cash Flow: $120K</div>
    <div class="location">Austin, TX</div>
    <p class="description">Established cafe with loyal customers and turnkey operations in downtown.</p>
    <img class="listing-image" src="/images/coffee.jpg">
  </div>
  <div class="result-list-item">
    <h3 class="listing-title"><a href="/business-for-sale/mystery/2/">Mystery Opportunity</a></h3>
    <p class="description">Call for details.</p>
  </div>
  <div class="result-list-item">
    <h3 class="listing-title"><a href="/business-for-sale/bar/3/">Bar</a></h3>
    <div class="price">$90,000</div>
  </div>
</div>
<div class="pagination"><a class="next" href="/businesses-for-sale/2/">Next</a></div>
</body></html>
"""

GENERIC_PAGE = """
<html><body>
<div class="wrapper">
  <div class="card-x">
    <h2>Online Fitness Brand</h2>
    <a href="/listing/9">View</a>
    <span>Price: $300,000</span>
  </div>
  <div class="card-x">
    <h2>SaaS Analytics Tool</h2>
    <a href="/listing/10">View</a>
    <span>$1.2M</span>
  </div>
</div>
</body></html>
"""


def _ef_article(title: str, slug: str) -> str:
    return f"""
    <article>
      <h3 class="ef-listing-title"><a href="/listing/{slug}">{title}</a></h3>
      <div class="ef-listing-price">$850,000</div>
      <div class="revenue">$25,000</div>
      <div class="ef-listing-description">Growing private label brand selling kitchen gadgets through FBA.</div>
    </article>
    """


EMPIRE_FLIPPERS_PAGE = (
    "<html><body>"
    '<div class="listing"><h3>Featured</h3></div>'
    + _ef_article("Amazon FBA Kitchen Brand", "55123")
    + _ef_article("Amazon FBA Garden Brand", "55124")
    + _ef_article("Amazon FBA Pet Brand", "55125")
    + "</body></html>"
)


# ============================================================================
# TESTS: CONTAINER SELECTION
# ============================================================================

class TestContainerSelection:
    """Tests for selector strategies and the heuristic fallback."""

    def test_first_match_uses_first_selector_with_results(self):
        engine = ExtractionEngine(BIZBUYSELL)
        containers, selector = engine.select_containers(engine.parse(BIZBUYSELL_PAGE))

        assert selector == ".result-list-item"
        assert len(containers) == 3

    def test_most_matches_prefers_largest_set(self):
        engine = ExtractionEngine(EMPIRE_FLIPPERS)
        containers, selector = engine.select_containers(engine.parse(EMPIRE_FLIPPERS_PAGE))

        # ".listing" hits only the featured strip; "article" hits all three cards
        assert selector == "article"
        assert len(containers) == 3

    def test_most_matches_tie_keeps_earlier_selector(self):
        site = SiteConfig(
            slug="tie",
            name="Tie",
            base_url="https://tie.test",
            seed_urls=("https://tie.test/",),
            container_selectors=(".a", ".b"),
            container_strategy=ContainerStrategy.MOST_MATCHES,
        )
        engine = ExtractionEngine(site)
        html = '<div class="a"></div><div class="b"></div>'

        _, selector = engine.select_containers(engine.parse(html))
        assert selector == ".a"

    def test_heuristic_fallback_keeps_innermost_cards(self):
        engine = ExtractionEngine(BIZBUYSELL)
        containers, selector = engine.select_containers(engine.parse(GENERIC_PAGE))

        assert selector == HEURISTIC_SELECTOR
        assert len(containers) == 2
        assert all("card-x" in c.get("class", []) for c in containers)

    def test_no_containers_does_not_raise(self):
        engine = ExtractionEngine(BIZBUYSELL)

        report = engine.extract("<html><body><p>Nothing to see</p></body></html>")
        assert report.listings == []
        assert report.candidates == 0
        assert report.selector is None

        assert engine.extract("").listings == []

    def test_has_next_page(self):
        engine = ExtractionEngine(BIZBUYSELL)
        assert engine.has_next_page(engine.parse(BIZBUYSELL_PAGE))
        assert not engine.has_next_page(engine.parse(GENERIC_PAGE))

    def test_site_without_pagination_never_has_next_page(self):
        engine = ExtractionEngine(ACQUIRE)
        assert not engine.has_next_page(engine.parse(BIZBUYSELL_PAGE))


# ============================================================================
# TESTS: FIELD EXTRACTION
# ============================================================================

class TestFieldExtraction:
    """Tests for per-field selector and regex fallbacks."""

    def test_bizbuysell_card_fields(self):
        report = ExtractionEngine(BIZBUYSELL).extract(BIZBUYSELL_PAGE)

        assert report.candidates == 3
        assert len(report.listings) == 1
        listing = report.listings[0]

        assert listing.name == "Profitable Coffee Shop"
        assert listing.source == "BizBuySell"
        assert listing.asking_price == 450_000
        assert listing.annual_revenue == 120_000
        assert listing.location == "Austin, TX"
        assert listing.industry == "Food & Beverage"
        assert listing.original_url == "https://www.bizbuysell.com/business-for-sale/coffee-shop/123/"
        assert listing.image_url == "https://www.bizbuysell.com/images/coffee.jpg"
        assert listing.highlights == [
            "Profitable business",
            "Established business",
            "Turnkey operation",
        ]

    def test_discard_rule_and_short_names(self):
        report = ExtractionEngine(BIZBUYSELL).extract(BIZBUYSELL_PAGE)

        # "Mystery Opportunity": no price, no revenue, short description
        # "Bar": name of 3 characters
        assert report.discarded == 2
        names = [listing.name for listing in report.listings]
        assert "Mystery Opportunity" not in names
        assert "Bar" not in names

    def test_long_description_alone_keeps_listing(self):
        html = """
        <div class="result-list-item">
          <h3 class="listing-title"><a href="/business-for-sale/x/1/">Boutique Landscaping Company</a></h3>
          <p class="description">Family run landscaping company serving residential clients across three counties for years.</p>
        </div>
        """
        report = ExtractionEngine(BIZBUYSELL).extract(html)

        assert len(report.listings) == 1
        listing = report.listings[0]
        assert listing.asking_price == 0
        assert listing.annual_revenue == 0
        assert listing.industry == "Services"

    def test_heuristic_cards_use_text_regexes(self):
        report = ExtractionEngine(BIZBUYSELL).extract(GENERIC_PAGE)

        assert [l.name for l in report.listings] == ["Online Fitness Brand", "SaaS Analytics Tool"]
        assert report.listings[0].asking_price == 300_000
        assert report.listings[1].asking_price == 1_200_000
        assert report.listings[0].original_url == "https://www.bizbuysell.com/listing/9"

    def test_monthly_revenue_selector_is_annualized(self):
        report = ExtractionEngine(EMPIRE_FLIPPERS).extract(EMPIRE_FLIPPERS_PAGE)

        assert len(report.listings) == 3
        listing = report.listings[0]
        assert listing.asking_price == 850_000
        assert listing.annual_revenue == 300_000
        assert listing.location == "Unknown"
        assert listing.original_url == "https://empireflippers.com/listing/55123"

    def test_monthly_revenue_text_is_annualized(self):
        html = """
        <div class="listing-card">
          <h3>Recipe Blog With Newsletter</h3>
          <a href="/12345">Open</a>
          <div class="price">$40,000</div>
          <div class="revenue">$5,000 /mo</div>
        </div>
        """
        report = ExtractionEngine(FLIPPA).extract(html)

        assert len(report.listings) == 1
        listing = report.listings[0]
        assert listing.annual_revenue == 60_000
        assert listing.industry == "Content"
        assert listing.location == "Global"
        assert listing.original_url == "https://flippa.com/12345"

    def test_year_in_revenue_label_is_not_the_amount(self):
        html = """
        <div class="listing-card">
          <h3>Outdoor Gear Review Site</h3>
          <a href="/67890">Open</a>
          <div class="price">$900,000</div>
          <div class="revenue">Revenue (2023): $1.2M</div>
        </div>
        """
        report = ExtractionEngine(FLIPPA).extract(html)

        assert len(report.listings) == 1
        assert report.listings[0].annual_revenue == 1_200_000

    def test_anchor_container_and_profit_multiple(self):
        html = """
        <div class="grid">
          <a href="https://app.acquire.com/startup/abc">
            <h4>Niche SaaS for Podcasters</h4>
            <p>Subscription analytics platform for podcasters with 400 paying customers.</p>
            <span>Asking price $120k</span>
            <span>4x profit</span>
            <span>United States</span>
          </a>
        </div>
        """
        report = ExtractionEngine(ACQUIRE).extract(html)

        assert report.selector == "a[href*='app.acquire.com/startup']"
        assert len(report.listings) == 1
        listing = report.listings[0]
        assert listing.name == "Niche SaaS for Podcasters"
        assert listing.asking_price == 120_000
        assert listing.annual_revenue == 30_000
        assert listing.location == "United States"
        assert listing.industry == "SaaS"
        assert listing.original_url == "https://app.acquire.com/startup/abc"

    def test_clamped_amounts_are_counted(self):
        html = """
        <div class="result-list-item">
          <h3 class="listing-title"><a href="/business-for-sale/big/1/">Very Large Holding Company</a></h3>
          <div class="price">$5B</div>
        </div>
        """
        report = ExtractionEngine(BIZBUYSELL).extract(html)

        assert report.clamped == 1
        assert report.listings[0].asking_price == 2_147_483_647

    def test_duplicate_cards_on_one_page_are_dropped(self):
        card = """
        <div class="result-list-item">
          <h3 class="listing-title"><a href="/business-for-sale/dup/1/">Duplicate Car Wash</a></h3>
          <div class="price">$200,000</div>
        </div>
        """
        report = ExtractionEngine(BIZBUYSELL).extract(card + card)

        assert len(report.listings) == 1
        assert report.duplicates == 1


# ============================================================================
# TESTS: FILTERING AND FAILURES
# ============================================================================

class TestFilteringAndFailures:
    def test_fba_site_filters_non_matching_listings(self):
        html = """
        <article class="business-card">
          <h3><a href="/listings/1/">Amazon FBA Supplement Brand</a></h3>
          <div class="price">$1.5M</div>
        </article>
        <article class="business-card">
          <h3><a href="/listings/2/">Dental Practice Software</a></h3>
          <div class="price">$2M</div>
        </article>
        """
        report = ExtractionEngine(QUIETLIGHT_FBA).extract(html)

        assert [l.name for l in report.listings] == ["Amazon FBA Supplement Brand"]
        assert report.filtered == 1
        assert report.listings[0].industry == "Amazon FBA"
        assert report.listings[0].source == "QuietLight"

    def test_failing_card_does_not_stop_siblings(self, monkeypatch):
        engine = ExtractionEngine(EMPIRE_FLIPPERS)
        original = engine.extract_listing
        calls = []

        def flaky(container):
            calls.append(container)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return original(container)

        monkeypatch.setattr(engine, "extract_listing", flaky)
        report = engine.extract(EMPIRE_FLIPPERS_PAGE)

        assert report.failed == 1
        assert len(report.listings) == 2


# ============================================================================
# TESTS: TABLE AND PATH-PAGED SITES
# ============================================================================

CENTURICA_PAGE = """
<table id="table-listings">
  <thead>
    <tr><th>Added</th><th>Listing</th><th>Model</th><th>Niche</th><th>Price</th>
        <th>Gross</th><th>Net</th><th>Inventory</th><th>Multiple</th><th>R-Index</th><th>Provider</th></tr>
  </thead>
  <tbody>
    <tr>
      <td>2024-05-01</td>
      <td><a href="https://quietlight.com/listings/123">Pet Supplies Shopify Store</a></td>
      <td>Ecommerce</td><td>Pets</td><td>$1,200,000</td><td>$900,000</td><td>$300,000</td>
      <td>$50,000</td><td>4.0x</td><td>72</td><td>QuietLight</td>
    </tr>
    <tr>
      <td>2024-05-02</td>
      <td><a href="https://empireflippers.com/listing/777">Niche Recipe Blog</a></td>
      <td>Content</td><td>Food</td><td>$450,000</td><td>-</td><td>$150,000</td>
      <td>-</td><td>3.0x</td><td>65</td><td>Empire Flippers</td>
    </tr>
    <tr>
      <td>2024-05-03</td><td><a href="/marketwatch">TBD</a></td>
      <td></td><td></td><td></td><td></td><td></td><td></td><td></td><td></td><td></td>
    </tr>
  </tbody>
</table>
"""


class TestAggregatorAndPathPagedSites:
    def test_centurica_rows_read_by_column(self):
        report = ExtractionEngine(CENTURICA).extract(CENTURICA_PAGE)

        assert report.selector == "#table-listings tbody tr"
        assert report.candidates == 3
        assert report.discarded == 1
        first, second = report.listings

        assert first.name == "Pet Supplies Shopify Store"
        assert first.asking_price == 1_200_000
        assert first.annual_revenue == 900_000
        assert first.industry == "E-commerce"
        assert first.location == "Various"
        assert first.original_url == "https://quietlight.com/listings/123"
        assert first.source == "Centurica"

        # Gross revenue missing, net revenue used instead
        assert second.annual_revenue == 150_000
        assert second.industry == "Content"

    def test_exitadviser_pages_inside_path(self):
        seed = EXITADVISER.seed_urls[0]

        assert EXITADVISER.page_url(seed, 1) == seed
        assert EXITADVISER.page_url(seed, 2) == (
            "https://exitadviser.com/find-a-business/page-2"
            "?category=ecommerce&keywords=amazon+fba+ecommerce+marketplace+online+retail"
        )

    def test_exitadviser_card_fields(self):
        html = """
        <div class="search-result">
          <h3><a href="/business/9876">Established Amazon FBA Brand</a></h3>
          <div class="price">$750,000</div>
          <div class="location">Austin, TX</div>
          <div class="category">E-commerce</div>
          <p>Private label kitchen products with strong reviews and steady repeat buyers.</p>
        </div>
        """
        report = ExtractionEngine(EXITADVISER).extract(html)

        assert len(report.listings) == 1
        listing = report.listings[0]
        assert listing.name == "Established Amazon FBA Brand"
        assert listing.asking_price == 750_000
        assert listing.location == "Austin, TX"
        assert listing.industry == "E-commerce"
        assert listing.original_url == "https://exitadviser.com/business/9876"
