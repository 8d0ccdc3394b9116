"""Product model: one row per (brand, model, state_province)."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brightchoice.models.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from brightchoice.models.brand import Brand
    from brightchoice.models.change_log import ChangeLog
    from brightchoice.models.product_version import ProductVersion


class Product(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Normalized lighting product for a single region.

    Each scraped model is expanded into one row per state/province it is
    sold in. Spec columns are nullable: a value the source page did not
    publish is stored as NULL rather than a default, so the stored row and
    its spec_hash always describe the same snapshot.
    """

    __tablename__ = "products"

    # Identity
    brand_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("brands.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    brand: Mapped[str] = mapped_column(String(200), nullable=False)
    model: Mapped[str] = mapped_column(String(300), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="Bulb")
    sku: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    product_url: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)

    # Photometric / electrical specs
    watts: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    lumens: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    efficiency: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    cct: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    cri: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    lifespan: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True, comment="Rated life in hours")
    warranty: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True, comment="Warranty in years")
    ip_rating: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    voltage: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    dimming: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    cert_ul: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    cert_dlc: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    cert_energy_star: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    # Commercial
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(5), nullable=False, default="USD")
    state_province: Mapped[str] = mapped_column(
        String(5),
        nullable=False,
        comment="Two-letter US state or Canadian province (e.g. TX, ON)"
    )
    sales_channel: Mapped[str] = mapped_column(String(20), nullable=False, default="Distributor")
    use_type: Mapped[str] = mapped_column(String(20), nullable=False, default="Commercial")

    # Change detection
    spec_hash: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        index=True,
        comment="SHA-256 of the normalized spec snapshot"
    )
    last_scraped_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last time this product was scraped"
    )

    # Unmapped / raw-preserved attributes
    attributes: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
        comment="Mapped attributes not stored in dedicated columns"
    )

    __table_args__ = (
        UniqueConstraint("brand", "model", "state_province", name="uq_product_brand_model_region"),
        Index("idx_products_brand_model", "brand", "model"),
        Index("idx_products_state_province", "state_province"),
    )

    # Relationships
    brand_ref: Mapped[Optional["Brand"]] = relationship(back_populates="products")
    versions: Mapped[list["ProductVersion"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVersion.version_number.desc()"
    )
    change_logs: Mapped[list["ChangeLog"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<Product(id={self.id}, brand='{self.brand}', model='{self.model}', "
            f"state_province='{self.state_province}')>"
        )
