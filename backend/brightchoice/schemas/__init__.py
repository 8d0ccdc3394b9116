"""Pydantic schemas for API request/response validation."""

from brightchoice.schemas.health import HealthCheckResponse
from brightchoice.schemas.ingest import (
    IngestGeoHint,
    IngestProductItem,
    IngestRequest,
    IngestResponse,
    IngestStats,
)

__all__ = [
    "HealthCheckResponse",
    "IngestGeoHint",
    "IngestProductItem",
    "IngestRequest",
    "IngestResponse",
    "IngestStats",
]
