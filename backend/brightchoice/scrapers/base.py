"""Brand scraper contract and the data structures that flow through the pipeline.

Brand-specific scrapers live outside this package. They subclass
BaseBrandScraper, implement scrape(), and hand back RawProduct objects;
everything from attribute mapping onwards happens here.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import structlog
from tenacity import AsyncRetrying, RetryError, stop_after_attempt, wait_exponential

from brightchoice.config import settings
from brightchoice.core.exceptions import ScraperError
from brightchoice.scrapers.rate_limiter import DomainRateLimiter


@dataclass(frozen=True)
class GeoHint:
    """Geo evidence extracted from the source page itself.

    Attributes:
        country: "USA" or "Canada" when the page targets one market
        state_province: Two-letter state/province when the page names one
    """

    country: Optional[str] = None
    state_province: Optional[str] = None


@dataclass
class RawProduct:
    """A single scraped product before normalization."""

    model: str
    specs: Dict[str, str] = field(default_factory=dict)
    sku: Optional[str] = None
    category: Optional[str] = None
    product_url: Optional[str] = None
    price: Optional[str] = None
    raw_payload: Optional[str] = None  # Raw HTML or JSON body, kept for audit
    geo: Optional[GeoHint] = None

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.model or not self.model.strip():
            raise ValueError("model is required")


@dataclass
class BrandConfig:
    """Brand row as seen by the orchestrator and scrapers."""

    id: uuid.UUID
    name: str
    website_url: str = ""
    scraper_config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NormalizedProduct:
    """Canonical product record produced by the normalizer.

    Numeric spec fields are None when the source did not publish a
    parseable value; the validator decides whether that is fatal.
    """

    brand: str
    model: str
    category: str = "Bulb"
    brand_id: Optional[uuid.UUID] = None
    sku: Optional[str] = None
    product_url: Optional[str] = None

    watts: Optional[float] = None
    lumens: Optional[float] = None
    efficiency: Optional[float] = None
    cct: Optional[float] = None
    cri: Optional[float] = None
    lifespan: Optional[float] = None
    warranty: Optional[float] = None
    ip_rating: Optional[str] = None
    voltage: Optional[str] = None
    dimming: Optional[str] = None
    cert_ul: Optional[bool] = None
    cert_dlc: Optional[bool] = None
    cert_energy_star: Optional[bool] = None

    price: Optional[float] = None
    currency: str = "USD"
    state_province: Optional[str] = None
    sales_channel: str = "Distributor"
    use_type: str = "Commercial"

    attributes: Dict[str, Any] = field(default_factory=dict)  # Unmapped + secondary attributes

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.brand:
            raise ValueError("brand is required")
        if not self.model:
            raise ValueError("model is required")

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain dict of every field."""
        return asdict(self)


class BaseBrandScraper(ABC):
    """Abstract base class for all brand scrapers.

    Subclasses implement scrape(); callers use execute(), which adds the
    per-attempt timeout and exponential-backoff retries. Subclasses that make
    several requests per scrape call _rate_limit(url) before each one.
    """

    retry_wait = wait_exponential(multiplier=1, min=2, max=30)

    def __init__(self, brand_config: BrandConfig, rate_limiter: Optional[DomainRateLimiter] = None):
        """Initialize the scraper for one brand.

        Args:
            brand_config: Brand row from the database
            rate_limiter: Per-domain limiter, usually injected by the factory
        """
        self.brand_config = brand_config
        self.rate_limiter = rate_limiter
        self.logger = structlog.get_logger(__name__).bind(brand=brand_config.name)

    @abstractmethod
    async def scrape(self) -> List[RawProduct]:
        """Fetch raw products from the brand's website or API.

        Returns:
            List of RawProduct objects
        """
        pass

    async def _rate_limit(self, url: Optional[str] = None) -> None:
        """Wait for the rate limiter before a request to url (default: the brand website)."""
        if not self.rate_limiter:
            return
        domain = urlparse(url or self.brand_config.website_url).netloc
        if domain:
            await self.rate_limiter.acquire(domain)

    async def execute(self) -> List[RawProduct]:
        """Run scrape() with timeout and retries.

        Raises:
            ScraperError: If every attempt fails
        """
        max_attempts = settings.SCRAPE_MAX_RETRIES
        timeout = settings.SCRAPE_TIMEOUT_MS / 1000

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=self.retry_wait,
            ):
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    self.logger.info("scrape_started", attempt=attempt_number, max_attempts=max_attempts)
                    try:
                        await self._rate_limit()
                        products = await asyncio.wait_for(self.scrape(), timeout=timeout)
                    except Exception as e:
                        self.logger.error("scrape_attempt_failed", attempt=attempt_number, error=str(e))
                        raise
        except RetryError as e:
            last_error = e.last_attempt.exception()
            self.logger.error("scrape_gave_up", attempts=max_attempts, error=str(last_error))
            raise ScraperError(self.brand_config.name, str(last_error)) from last_error

        self.logger.info("scrape_completed", count=len(products))
        return products
