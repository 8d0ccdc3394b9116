"""SQLAlchemy models for Bright Choice.

All models are imported here so Base.metadata sees every table.
"""

from brightchoice.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from brightchoice.models.brand import Brand
from brightchoice.models.product import Product
from brightchoice.models.product_version import ProductVersion
from brightchoice.models.change_log import ChangeLog
from brightchoice.models.scrape_run import ScrapeRun, RawScrapedData

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "Brand",
    "Product",
    "ProductVersion",
    "ChangeLog",
    "ScrapeRun",
    "RawScrapedData",
]
