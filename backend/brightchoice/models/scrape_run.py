"""Scrape run tracking and raw payload audit trail."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brightchoice.models.base import Base, JSONType, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from brightchoice.models.brand import Brand


class ScrapeRun(UUIDPrimaryKeyMixin, Base):
    """Tracks execution of one brand scrape.

    Each run records its status and the found/new/changed/errored counts
    reported by the orchestrator.
    """

    __tablename__ = "scrape_runs"

    brand_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("brands.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
        index=True,
        comment="Status: 'pending', 'running', 'completed', 'failed'"
    )

    # Metrics
    products_found: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    products_new: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    products_changed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    products_errored: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    error_message: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Error message if the run failed"
    )

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    brand: Mapped["Brand"] = relationship(back_populates="scrape_runs")
    raw_data: Mapped[list["RawScrapedData"]] = relationship(
        back_populates="scrape_run",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ScrapeRun(id={self.id}, brand_id={self.brand_id}, status='{self.status}')>"


class RawScrapedData(UUIDPrimaryKeyMixin, Base):
    """Raw HTML/JSON captured during a run, kept for audit and re-processing."""

    __tablename__ = "raw_scraped_data"

    scrape_run_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("scrape_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    source_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    content_type: Mapped[str] = mapped_column(String(50), nullable=False, default="text/html")
    raw_json: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    raw_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scraped_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    scrape_run: Mapped["ScrapeRun"] = relationship(back_populates="raw_data")
