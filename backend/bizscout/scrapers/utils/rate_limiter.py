"""Token bucket rate limiting keyed per external dependency."""

import asyncio
import time
from typing import Dict, Optional
from urllib.parse import urlparse


class TokenBucket:
    """Token bucket: starts full, refills at a constant rate.

    Each request consumes one token; when empty, acquire() sleeps until
    enough tokens have been refilled.
    """

    def __init__(self, rate: float, capacity: float):
        """Initialize token bucket.

        Args:
            rate: Tokens per second (e.g., 0.5 = 30 RPM)
            capacity: Maximum tokens in bucket (burst capacity)
        """
        self.rate = rate
        self.capacity = capacity
        self.tokens = capacity
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.last_refill = now

    async def acquire(self, tokens: float = 1.0) -> float:
        """Acquire tokens from the bucket, waiting if necessary.

        Args:
            tokens: Number of tokens to acquire (default 1.0)

        Returns:
            Total seconds spent waiting
        """
        waited = 0.0
        async with self._lock:
            while True:
                self._refill()
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return waited
                wait_time = (tokens - self.tokens) / self.rate
                waited += wait_time
                await asyncio.sleep(wait_time)


class DomainRateLimiter:
    """Per-dependency rate limiter.

    Buckets are keyed by host. All marketplace fetches go through the
    rendering proxy, so in practice the proxy host's bucket is the one
    that guards the shared API quota, whichever adapters are running.
    """

    # Requests per minute for known hosts
    DOMAIN_LIMITS_RPM = {
        # Rendering proxy
        "api.scraperapi.com": 30,
        # Direct marketplace hosts
        "www.bizbuysell.com": 10,
        "www.bizquest.com": 10,
        "empireflippers.com": 10,
        "quietlight.com": 10,
        "flippa.com": 10,
        "acquire.com": 5,
    }

    DEFAULT_RPM = 10

    def __init__(self, limits_rpm: Optional[Dict[str, int]] = None):
        """Initialize rate limiter.

        Args:
            limits_rpm: Optional overrides merged over DOMAIN_LIMITS_RPM
        """
        self._limits = {**self.DOMAIN_LIMITS_RPM, **(limits_rpm or {})}
        self._buckets: Dict[str, TokenBucket] = {}

    @staticmethod
    def key_for(url_or_domain: str) -> str:
        """Reduce a URL to its host; bare hosts pass through."""
        if "://" in url_or_domain:
            return urlparse(url_or_domain).netloc
        return url_or_domain

    @staticmethod
    def _make_bucket(rpm: int) -> TokenBucket:
        rate = rpm / 60.0
        # Small bursts allowed (10% of RPM, min 2)
        capacity = max(2.0, rpm / 10.0)
        return TokenBucket(rate=rate, capacity=capacity)

    def _get_bucket(self, domain: str) -> TokenBucket:
        if domain not in self._buckets:
            rpm = self._limits.get(domain, self.DEFAULT_RPM)
            self._buckets[domain] = self._make_bucket(rpm)
        return self._buckets[domain]

    async def acquire(self, domain: str, tokens: float = 1.0) -> float:
        """Block until the limit for ``domain`` allows one more request.

        Args:
            domain: Host name or full URL
            tokens: Number of tokens to acquire (default 1.0)

        Returns:
            Seconds spent waiting
        """
        bucket = self._get_bucket(self.key_for(domain))
        return await bucket.acquire(tokens)

    def set_custom_limit(self, domain: str, rpm: int) -> None:
        """Set a custom rate limit, replacing any existing bucket.

        Args:
            domain: Host name or full URL
            rpm: Requests per minute limit
        """
        if rpm <= 0:
            raise ValueError("rpm must be positive")
        domain = self.key_for(domain)
        self._limits[domain] = rpm
        self._buckets[domain] = self._make_bucket(rpm)

    def get_current_rate(self, domain: str) -> float:
        """Current limit for a host in requests per minute."""
        bucket = self._get_bucket(self.key_for(domain))
        return bucket.rate * 60.0
