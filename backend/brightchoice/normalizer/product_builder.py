"""Builds a NormalizedProduct from a raw product and its mapped attributes."""

from typing import Dict, Mapping, Optional

import structlog

from brightchoice.normalizer.attribute_map import MappedAttribute
from brightchoice.normalizer.unit_converter import extract_numeric, parse_and_convert
from brightchoice.scrapers.base import BrandConfig, NormalizedProduct, RawProduct

logger = structlog.get_logger(__name__)

DEFAULT_CATEGORY = "Bulb"

# Standard attribute -> canonical unit for the numeric columns
NUMERIC_FIELDS: Mapping[str, str] = {
    "watts": "W",
    "lumens": "lm",
    "efficiency": "lm/W",
    "cct": "K",
    "cri": "",
    "lifespan": "hours",
    "warranty": "years",
}

TEXT_FIELDS = ("ip_rating", "voltage", "dimming")

# Numeric attributes without a dedicated column; kept in `attributes`
SECONDARY_NUMERIC_FIELDS: Mapping[str, str] = {
    "beam_angle": "°",
    "weight": "kg",
}


def _convert(attr: MappedAttribute, target_unit: str) -> Optional[float]:
    converted = parse_and_convert(attr.value, target_unit)
    if converted is None:
        logger.debug("value_not_numeric", field=attr.standard_name, raw_value=attr.value)
        return None
    if target_unit and converted.unit.lower() != target_unit.lower():
        logger.debug(
            "unit_not_converted",
            field=attr.standard_name,
            raw_value=attr.value,
            unit=converted.unit,
            target_unit=target_unit,
        )
    return converted.value


def build_normalized_product(
    brand: BrandConfig,
    raw: RawProduct,
    mapped: Mapping[str, MappedAttribute],
) -> NormalizedProduct:
    """Merge mapped attributes into the canonical product record.

    Unparseable numeric values become None instead of a default so the
    validator sees them as missing.

    Args:
        brand: Brand the product was scraped for
        raw: Raw scraped product
        mapped: Output of map_attributes(raw.specs)

    Returns:
        NormalizedProduct without any region fields set
    """
    numeric: Dict[str, Optional[float]] = {}
    for name, unit in NUMERIC_FIELDS.items():
        attr = mapped.get(name)
        numeric[name] = _convert(attr, unit) if attr else None

    text: Dict[str, Optional[str]] = {}
    for name in TEXT_FIELDS:
        attr = mapped.get(name)
        text[name] = (attr.value.strip() or None) if attr else None

    attributes: Dict[str, dict] = {}
    for key, attr in mapped.items():
        if key in NUMERIC_FIELDS or key in TEXT_FIELDS:
            continue
        entry = {"value": attr.value, "unit": attr.unit, "source_field": attr.source_field}
        if key in SECONDARY_NUMERIC_FIELDS:
            entry["normalized"] = _convert(attr, SECONDARY_NUMERIC_FIELDS[key])
        attributes[key] = entry

    return NormalizedProduct(
        brand=brand.name,
        brand_id=brand.id,
        model=raw.model.strip(),
        category=raw.category or DEFAULT_CATEGORY,
        sku=raw.sku,
        product_url=raw.product_url,
        price=extract_numeric(raw.price) if raw.price else None,
        attributes=attributes,
        **numeric,
        **text,
    )
