"""Attribute mapping dictionary.

Maps the free-text field names manufacturers use on their product pages
("Luminous Flux", "System Wattage", "L70 Lifetime", ...) to a fixed set of
standardized attribute keys. Matching is exact and case-insensitive; to teach
the mapper a new vocabulary, add the synonym to the table below.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AttributeMapping:
    """One standardized attribute and the source names that resolve to it."""

    standard_name: str
    unit: str
    source_names: Tuple[str, ...]


@dataclass(frozen=True)
class MappedAttribute:
    """A raw field after mapping.

    Attributes:
        standard_name: Standard key, or raw_<slug> for unmatched fields
        value: Raw value string exactly as scraped
        unit: Canonical unit of the standard attribute ("" when unitless or unmatched)
        source_field: Original field name from the source page
    """

    standard_name: str
    value: str
    unit: str
    source_field: str


RAW_PREFIX = "raw_"

ATTRIBUTE_MAP: Tuple[AttributeMapping, ...] = (
    AttributeMapping(
        standard_name="lumens",
        unit="lm",
        source_names=(
            "luminous flux", "output", "brightness", "light output",
            "lumen output", "total lumens", "delivered lumens", "initial lumens",
            "lumens", "lm",
        ),
    ),
    AttributeMapping(
        standard_name="watts",
        unit="W",
        source_names=(
            "power", "wattage", "input power", "system wattage",
            "system watts", "watts", "w", "power consumption",
        ),
    ),
    AttributeMapping(
        standard_name="efficiency",
        unit="lm/W",
        source_names=(
            "efficacy", "efficiency", "lm/w", "lumens per watt",
            "luminous efficacy", "system efficacy",
        ),
    ),
    AttributeMapping(
        standard_name="cct",
        unit="K",
        source_names=(
            "color temperature", "cct", "kelvin", "color temp",
            "correlated color temperature", "colour temperature",
        ),
    ),
    AttributeMapping(
        standard_name="cri",
        unit="",
        source_names=(
            "color rendering", "cri", "ra", "color rendering index",
            "colour rendering index", "cri (ra)",
        ),
    ),
    AttributeMapping(
        standard_name="lifespan",
        unit="hours",
        source_names=(
            "l70 lifetime", "rated life", "lifespan", "life hours",
            "expected life", "rated lifetime", "l70", "useful life",
        ),
    ),
    AttributeMapping(
        standard_name="warranty",
        unit="years",
        source_names=("warranty", "warranty period", "guarantee"),
    ),
    AttributeMapping(
        standard_name="ip_rating",
        unit="",
        source_names=(
            "ip rating", "ip", "ingress protection", "ip code",
            "environmental rating",
        ),
    ),
    AttributeMapping(
        standard_name="voltage",
        unit="V",
        source_names=(
            "voltage", "input voltage", "operating voltage",
            "supply voltage", "voltage range",
        ),
    ),
    AttributeMapping(
        standard_name="dimming",
        unit="",
        source_names=(
            "dimming", "dimmable", "dimming range", "dimming protocol",
            "dimming type",
        ),
    ),
    AttributeMapping(
        standard_name="beam_angle",
        unit="°",
        source_names=(
            "beam angle", "beam spread", "beam distribution",
            "distribution", "optic",
        ),
    ),
    AttributeMapping(
        standard_name="weight",
        unit="kg",
        source_names=("weight", "net weight", "product weight"),
    ),
)

# Lowercased synonym -> mapping, built once at import
_SYNONYM_INDEX: Mapping[str, AttributeMapping] = MappingProxyType({
    name.lower(): mapping
    for mapping in ATTRIBUTE_MAP
    for name in mapping.source_names
})

STANDARD_ATTRIBUTES: Tuple[str, ...] = tuple(m.standard_name for m in ATTRIBUTE_MAP)


def find_mapping(source_field_name: str) -> Optional[AttributeMapping]:
    """Find the standard attribute for a source field name.

    Case-insensitive, exact match after trimming whitespace.
    """
    return _SYNONYM_INDEX.get(source_field_name.strip().lower())


def raw_key(source_field_name: str) -> str:
    """Build the raw_<slug> key used to preserve an unmapped field."""
    slug = re.sub(r"\s+", "_", source_field_name.strip().lower())
    return f"{RAW_PREFIX}{slug}"


def map_attributes(raw_specs: Mapping[str, str]) -> Dict[str, MappedAttribute]:
    """Map a raw specs bag to standardized attribute names.

    Every input field produces an entry: matched fields under their standard
    name, unmatched fields under raw_<slug> with an empty unit.

    Args:
        raw_specs: Field name -> raw value, as scraped

    Returns:
        Dict keyed by standard name (or raw_ key)
    """
    result: Dict[str, MappedAttribute] = {}

    for source_field, value in raw_specs.items():
        mapping = find_mapping(source_field)
        if mapping:
            key, unit = mapping.standard_name, mapping.unit
        else:
            key, unit = raw_key(source_field), ""

        if key in result:
            logger.debug(
                "attribute_overwritten",
                key=key,
                previous_source=result[key].source_field,
                source_field=source_field,
            )

        result[key] = MappedAttribute(
            standard_name=key,
            value=value,
            unit=unit,
            source_field=source_field,
        )

    return result
