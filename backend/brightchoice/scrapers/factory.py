"""Registry of brand scraper classes."""

from typing import Dict, Optional, Type

import structlog

from brightchoice.scrapers.base import BaseBrandScraper, BrandConfig
from brightchoice.scrapers.rate_limiter import DomainRateLimiter

logger = structlog.get_logger(__name__)


class ScraperFactory:
    """Maps brand names to scraper classes and builds configured instances."""

    def __init__(self, rate_limiter: Optional[DomainRateLimiter] = None):
        """Initialize the factory with an empty registry.

        Args:
            rate_limiter: Limiter shared by every scraper this factory builds
        """
        self._scraper_registry: Dict[str, Type[BaseBrandScraper]] = {}
        self.rate_limiter = rate_limiter or DomainRateLimiter()

    def register_scraper(self, brand_name: str, scraper_class: Type[BaseBrandScraper]) -> None:
        """Register a scraper class for a brand.

        Args:
            brand_name: Brand name exactly as stored in the brands table
            scraper_class: Scraper class (must inherit from BaseBrandScraper)
        """
        if not issubclass(scraper_class, BaseBrandScraper):
            raise ValueError(f"Scraper class must inherit from BaseBrandScraper: {scraper_class}")

        self._scraper_registry[brand_name] = scraper_class
        logger.info("scraper_registered", brand=brand_name, scraper=scraper_class.__name__)

    def create_scraper(self, brand: BrandConfig) -> Optional[BaseBrandScraper]:
        """Create a scraper instance for a brand.

        Returns:
            Configured scraper, or None if no scraper is registered
        """
        scraper_class = self._scraper_registry.get(brand.name)
        if not scraper_class:
            logger.warning("scraper_not_found", brand=brand.name)
            return None
        return scraper_class(brand, rate_limiter=self.rate_limiter)

    def has_scraper(self, brand_name: str) -> bool:
        """Check if a scraper is registered for a brand."""
        return brand_name in self._scraper_registry

    def get_registered_brands(self) -> list[str]:
        """Get list of registered brand names."""
        return list(self._scraper_registry.keys())


# Global factory instance
scraper_factory = ScraperFactory()


def get_scraper_factory() -> ScraperFactory:
    """Get the global scraper factory instance."""
    return scraper_factory
