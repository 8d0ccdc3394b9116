"""Brand model representing a tracked lighting manufacturer."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brightchoice.models.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from brightchoice.models.product import Product
    from brightchoice.models.scrape_run import ScrapeRun


class Brand(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Lighting manufacturer tracked by the platform.

    The brand name doubles as the key into the static geo distribution
    table and the scraper registry.
    """

    __tablename__ = "brands"

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    website_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    scraper_config: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
        comment="Brand-specific scraper config (selectors, URLs, etc.)"
    )

    # Relationships
    products: Mapped[list["Product"]] = relationship(back_populates="brand_ref")
    scrape_runs: Mapped[list["ScrapeRun"]] = relationship(
        back_populates="brand",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Brand(id={self.id}, name='{self.name}', is_active={self.is_active})>"
