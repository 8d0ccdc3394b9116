"""Immutable spec snapshots for each product version."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brightchoice.models.base import Base, JSONType, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from brightchoice.models.change_log import ChangeLog
    from brightchoice.models.product import Product


class ProductVersion(UUIDPrimaryKeyMixin, Base):
    """Snapshot of a product's change-relevant specs at one point in time.

    version_number starts at 1 and increases by one per detected change.
    The unique constraint on (product_id, version_number) is what makes
    concurrent writers fail loudly instead of forking the sequence.
    """

    __tablename__ = "product_versions"

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    snapshot: Mapped[dict] = mapped_column(JSONType, nullable=False)
    spec_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    change_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    __table_args__ = (
        UniqueConstraint("product_id", "version_number", name="uq_product_version_number"),
        Index("idx_product_versions_product_version", "product_id", "version_number"),
    )

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="versions")
    change_logs: Mapped[list["ChangeLog"]] = relationship(back_populates="version")

    def __repr__(self) -> str:
        return f"<ProductVersion(id={self.id}, product_id={self.product_id}, version_number={self.version_number})>"
