"""Tests for the rendering-proxy fetcher and the rate limiter."""

import httpx
import pytest

from bizscout.config import ScraperConfig
from bizscout.core.exceptions import ConfigError, FetchError
from bizscout.scrapers.fetcher import RenderingProxyFetcher
from bizscout.scrapers.utils import DomainRateLimiter, TokenBucket


# ============================================================================
# TESTS: FETCHER
# ============================================================================

class TestRenderingProxyFetcher:
    """Tests for RenderingProxyFetcher."""

    async def test_fetch_sends_proxy_params(self, scraper_config):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="<html>ok</html>")

        fetcher = RenderingProxyFetcher(scraper_config, transport=httpx.MockTransport(handler))
        html = await fetcher.fetch("https://www.bizbuysell.com/businesses-for-sale/")

        assert html == "<html>ok</html>"
        assert len(seen) == 1
        params = seen[0].url.params
        assert seen[0].url.host == "proxy.test"
        assert params["api_key"] == "test-key"
        assert params["url"] == "https://www.bizbuysell.com/businesses-for-sale/"
        assert params["render"] == "true"

    async def test_render_flag_can_be_disabled_per_call(self, scraper_config):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params["render"])
            return httpx.Response(200, text="")

        fetcher = RenderingProxyFetcher(scraper_config, transport=httpx.MockTransport(handler))
        await fetcher.fetch("https://flippa.com/search", render_js=False)

        assert seen == ["false"]

    async def test_non_2xx_raises_fetch_error(self, scraper_config):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        fetcher = RenderingProxyFetcher(scraper_config, transport=transport)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://quietlight.com/listings/")

        assert exc_info.value.status_code == 500
        assert exc_info.value.url == "https://quietlight.com/listings/"
        assert "500" in exc_info.value.message

    async def test_timeout_raises_fetch_error(self, scraper_config):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        fetcher = RenderingProxyFetcher(scraper_config, transport=httpx.MockTransport(handler))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://flippa.com/search", timeout=1.5)

        assert exc_info.value.status_code is None
        assert "timed out after 1.5s" in exc_info.value.message

    async def test_network_error_raises_fetch_error(self, scraper_config):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = RenderingProxyFetcher(scraper_config, transport=httpx.MockTransport(handler))

        with pytest.raises(FetchError):
            await fetcher.fetch("https://acquire.com/")

    async def test_no_retry_on_failure(self, scraper_config):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        fetcher = RenderingProxyFetcher(scraper_config, transport=httpx.MockTransport(handler))
        with pytest.raises(FetchError):
            await fetcher.fetch("https://acquire.com/")

        assert len(calls) == 1

    def test_missing_api_key_raises_config_error(self):
        with pytest.raises(ConfigError) as exc_info:
            RenderingProxyFetcher(ScraperConfig(api_key=""))

        assert exc_info.value.setting == "SCRAPER_API_KEY"

    def test_proxy_host_gets_configured_limit(self, scraper_config):
        limiter = DomainRateLimiter()
        RenderingProxyFetcher(scraper_config, rate_limiter=limiter)

        assert limiter.get_current_rate("proxy.test") == pytest.approx(6000)


# ============================================================================
# TESTS: RATE LIMITER
# ============================================================================

class TestRateLimiter:
    """Tests for TokenBucket and DomainRateLimiter."""

    async def test_bucket_allows_burst_without_waiting(self):
        bucket = TokenBucket(rate=1.0, capacity=3)

        waits = [await bucket.acquire() for _ in range(3)]
        assert waits == [0.0, 0.0, 0.0]

    async def test_bucket_waits_when_empty(self, monkeypatch):
        slept = []

        async def fake_sleep(seconds):
            slept.append(seconds)
            bucket.tokens += seconds * bucket.rate

        bucket = TokenBucket(rate=2.0, capacity=1)
        monkeypatch.setattr("bizscout.scrapers.utils.rate_limiter.asyncio.sleep", fake_sleep)

        await bucket.acquire()
        waited = await bucket.acquire()

        assert waited > 0
        assert slept

    def test_key_for_reduces_urls_to_hosts(self):
        assert DomainRateLimiter.key_for("https://api.scraperapi.com/?x=1") == "api.scraperapi.com"
        assert DomainRateLimiter.key_for("flippa.com") == "flippa.com"

    def test_limits(self):
        limiter = DomainRateLimiter({"example.com": 120})

        assert limiter.get_current_rate("api.scraperapi.com") == pytest.approx(30)
        assert limiter.get_current_rate("https://example.com/page") == pytest.approx(120)
        assert limiter.get_current_rate("unknown.test") == pytest.approx(DomainRateLimiter.DEFAULT_RPM)

    def test_set_custom_limit_rejects_non_positive(self):
        with pytest.raises(ValueError):
            DomainRateLimiter().set_custom_limit("example.com", 0)
