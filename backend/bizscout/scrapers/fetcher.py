"""Fetch layer: raw HTML through a remote rendering proxy.

The proxy (ScraperAPI-compatible) takes ``api_key``, ``url`` and ``render``
query parameters and answers with the target page's HTML. A failed fetch is
terminal for that page: there is no retry or backoff here.
"""

import time
from typing import Optional

import httpx
import structlog

from bizscout.config import ScraperConfig
from bizscout.core.exceptions import ConfigError, FetchError
from bizscout.scrapers.utils.rate_limiter import DomainRateLimiter

logger = structlog.get_logger(__name__)


class RenderingProxyFetcher:
    """Fetches pages through the rendering proxy with a per-request timeout."""

    def __init__(
        self,
        config: ScraperConfig,
        rate_limiter: Optional[DomainRateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the fetcher.

        Args:
            config: Proxy endpoint, credential and limits
            rate_limiter: Shared limiter; a private one is created if omitted
            transport: Optional httpx transport (tests use MockTransport)

        Raises:
            ConfigError: If no API key is configured
        """
        if not config.api_key:
            raise ConfigError("SCRAPER_API_KEY")

        self.config = config
        self.transport = transport
        self.proxy_host = DomainRateLimiter.key_for(config.api_url)

        if rate_limiter is None:
            rate_limiter = DomainRateLimiter()
        self.rate_limiter = rate_limiter
        self.rate_limiter.set_custom_limit(self.proxy_host, config.requests_per_minute)

        self.logger = logger.bind(proxy=self.proxy_host)

    async def fetch(
        self,
        url: str,
        timeout: Optional[float] = None,
        render_js: Optional[bool] = None,
    ) -> str:
        """Fetch the HTML for ``url``.

        Args:
            url: Target page URL
            timeout: Seconds before giving up (default from config)
            render_js: Ask the proxy to execute JavaScript (default from config)

        Returns:
            Raw HTML text

        Raises:
            FetchError: On non-2xx status, timeout or network failure
        """
        timeout = timeout if timeout is not None else self.config.timeout_seconds
        render_js = render_js if render_js is not None else self.config.render_js

        waited = await self.rate_limiter.acquire(self.proxy_host)
        if waited:
            self.logger.debug("rate_limit_wait", url=url, waited_seconds=round(waited, 2))

        params = {
            "api_key": self.config.api_key,
            "url": url,
            "render": "true" if render_js else "false",
        }

        started = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
                response = await client.get(self.config.api_url, params=params)
                response.raise_for_status()
                html = response.text
        except httpx.TimeoutException as e:
            self.logger.warning("fetch_timeout", url=url, timeout=timeout)
            raise FetchError(url, f"timed out after {timeout}s") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            self.logger.warning("fetch_bad_status", url=url, status_code=status)
            raise FetchError(
                url,
                f"proxy returned {status} {e.response.reason_phrase}",
                status_code=status,
            ) from e
        except httpx.HTTPError as e:
            self.logger.warning("fetch_network_error", url=url, error=str(e))
            raise FetchError(url, str(e) or type(e).__name__) from e

        self.logger.info(
            "page_fetched",
            url=url,
            render_js=render_js,
            bytes=len(html),
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )
        return html
