"""Pydantic schemas for the external scraper ingest endpoint.

These schemas define the contract between brand scrapers running outside
this process and the pipeline API.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from brightchoice.scrapers.base import GeoHint, RawProduct


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class IngestGeoHint(BaseModel):
    """Market the source page was published for, when it says so itself."""

    country: Optional[str] = Field(
        None,
        description="'USA' or 'Canada'",
        examples=["Canada"],
    )
    state_province: Optional[str] = Field(
        None,
        min_length=2,
        max_length=5,
        description="Two-letter state or province code",
        examples=["ON"],
    )


class IngestProductItem(BaseModel):
    """A single scraped product submitted by an external scraper.

    Mirrors RawProduct: spec values stay as free text with their units and
    are normalized server-side.
    """

    model: str = Field(
        ...,
        min_length=1,
        max_length=300,
        description="Manufacturer model / catalog number",
        examples=["LBL4 LP840"],
    )
    specs: Dict[str, str] = Field(
        default_factory=dict,
        description="Source field name -> raw value, exactly as scraped",
        examples=[{"Wattage": "38 W", "Lumens": "4,500 lm", "CCT": "4000K"}],
    )
    sku: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=50, examples=["Troffer"])
    product_url: Optional[str] = Field(
        None,
        description="Canonical URL of the product page",
    )
    price: Optional[str] = Field(
        None,
        description="Price as displayed on the page",
        examples=["$149.00"],
    )
    raw_payload: Optional[str] = Field(
        None,
        description="Raw HTML or JSON body, kept for audit",
    )
    geo: Optional[IngestGeoHint] = None

    @field_validator("model")
    @classmethod
    def model_not_blank(cls, v: str) -> str:
        """Reject models that are only whitespace."""
        if not v.strip():
            raise ValueError("model must not be blank")
        return v.strip()

    def to_raw_product(self) -> RawProduct:
        """Convert to the RawProduct dataclass consumed by the pipeline."""
        return RawProduct(
            model=self.model,
            specs=dict(self.specs),
            sku=self.sku,
            category=self.category,
            product_url=self.product_url,
            price=self.price,
            raw_payload=self.raw_payload,
            geo=GeoHint(**self.geo.model_dump()) if self.geo else None,
        )


class IngestRequest(BaseModel):
    """Payload sent by an external scraper to POST /api/v1/ingest/products."""

    api_key: str = Field(
        ...,
        min_length=1,
        description="Shared secret that must match INGEST_API_KEY on the server",
    )
    brand: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Brand name that must exist and be active in the brands table",
        examples=["Acuity Brands"],
    )
    products: List[IngestProductItem] = Field(
        ...,
        min_length=1,
        description="List of scraped products. Minimum 1 item required.",
    )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class IngestStats(BaseModel):
    """Processing statistics returned after a successful ingest request."""

    received: int = Field(..., description="Total products received in the request")
    found: int = Field(..., description="Products handed to the pipeline")
    new: int = Field(..., description="New region rows inserted")
    changed: int = Field(..., description="Existing region rows with a new spec version")
    errors: int = Field(
        ...,
        description="Per-product failures, including invalid products that were skipped",
    )


class IngestResponse(BaseModel):
    """Response body for POST /api/v1/ingest/products."""

    status: str = Field("success", description="Always 'success' on HTTP 200")
    stats: IngestStats
