"""Field-level change records."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brightchoice.models.base import Base, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from brightchoice.models.product import Product
    from brightchoice.models.product_version import ProductVersion


class ChangeLog(UUIDPrimaryKeyMixin, Base):
    """One differing field between two consecutive snapshots. Append-only."""

    __tablename__ = "change_logs"

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    product_version_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("product_versions.id", ondelete="SET NULL"),
        nullable=True
    )
    field_name: Mapped[str] = mapped_column(String(100), nullable=False)
    old_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    detected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    __table_args__ = (
        Index("idx_change_logs_product_detected", "product_id", "detected_at"),
    )

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="change_logs")
    version: Mapped[Optional["ProductVersion"]] = relationship(back_populates="change_logs")

    def __repr__(self) -> str:
        return f"<ChangeLog(product_id={self.product_id}, field='{self.field_name}', {self.old_value!r} -> {self.new_value!r})>"
