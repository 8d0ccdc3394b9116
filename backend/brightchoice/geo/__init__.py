"""Brand distribution table and per-region expansion."""

from .brand_geo_config import (
    ALL_CA_PROVINCES,
    ALL_US_STATES,
    BRAND_GEO,
    BrandGeo,
    get_brand_geo,
)
from .geo_resolver import GeoVariant, get_geo_variants, normalize_country, resolve_geo_variants

__all__ = [
    "ALL_CA_PROVINCES",
    "ALL_US_STATES",
    "BRAND_GEO",
    "BrandGeo",
    "get_brand_geo",
    "GeoVariant",
    "get_geo_variants",
    "normalize_country",
    "resolve_geo_variants",
]
