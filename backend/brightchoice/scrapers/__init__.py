"""Brand scraper contract and run orchestration.

This package provides:
- Data structures exchanged with brand scrapers (RawProduct, BrandConfig)
- The abstract brand scraper with retry/timeout handling
- The brand -> scraper registry
- Per-domain request pacing
"""

from .base import (
    BaseBrandScraper,
    BrandConfig,
    GeoHint,
    NormalizedProduct,
    RawProduct,
)
from .factory import ScraperFactory, scraper_factory, get_scraper_factory
from .rate_limiter import DomainRateLimiter, TokenBucket

__all__ = [
    # Base classes
    "BaseBrandScraper",
    # Data structures
    "BrandConfig",
    "GeoHint",
    "NormalizedProduct",
    "RawProduct",
    # Factory
    "ScraperFactory",
    "scraper_factory",
    "get_scraper_factory",
    # Rate limiting
    "DomainRateLimiter",
    "TokenBucket",
]
