"""Token bucket rate limiter for per-domain request pacing."""

import asyncio
import time
from typing import Dict, Optional

import structlog

from brightchoice.config import settings

logger = structlog.get_logger(__name__)


class TokenBucket:
    """Token bucket algorithm implementation for rate limiting.

    The bucket starts full and refills at a constant rate.
    Each request consumes one token. If no tokens are available,
    the request waits until tokens are refilled.
    """

    def __init__(self, rate: float, capacity: float):
        """Initialize token bucket.

        Args:
            rate: Tokens per second (e.g., 0.5 = one request every 2 seconds)
            capacity: Maximum tokens in bucket (burst capacity)
        """
        self.rate = rate  # tokens per second
        self.capacity = capacity
        self.tokens = capacity
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        """Refill tokens based on elapsed time since last refill."""
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.last_refill = now

    async def acquire(self, tokens: float = 1.0) -> None:
        """Acquire tokens from the bucket, waiting if necessary."""
        async with self._lock:
            while True:
                self._refill()
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return
                wait_time = (tokens - self.tokens) / self.rate
                await asyncio.sleep(wait_time)


class DomainRateLimiter:
    """Per-domain rate limiter using token bucket algorithm.

    Each brand website gets its own bucket, so one slow manufacturer site
    never holds up scraping of the others. Buckets hold a single token:
    requests to one domain are spaced evenly rather than allowed to burst.
    """

    def __init__(self, default_rpm: Optional[float] = None):
        """Initialize rate limiter.

        Args:
            default_rpm: Requests per minute for domains without a custom
                limit (defaults to SCRAPE_RATE_LIMIT_RPM)
        """
        self.default_rpm = default_rpm or settings.SCRAPE_RATE_LIMIT_RPM
        self._buckets: Dict[str, TokenBucket] = {}

    @staticmethod
    def _bucket_for(rpm: float) -> TokenBucket:
        return TokenBucket(rate=rpm / 60.0, capacity=1.0)

    def _get_bucket(self, domain: str) -> TokenBucket:
        if domain not in self._buckets:
            self._buckets[domain] = self._bucket_for(self.default_rpm)
        return self._buckets[domain]

    async def acquire(self, domain: str) -> None:
        """Wait until a request to domain is allowed.

        Args:
            domain: Host name, e.g. "www.acuitybrands.com"
        """
        await self._get_bucket(domain).acquire()

    def set_custom_limit(self, domain: str, rpm: float) -> None:
        """Set a custom rate limit for a domain, replacing any existing bucket."""
        self._buckets[domain] = self._bucket_for(rpm)
        logger.info("rate_limit_set", domain=domain, rpm=rpm)
