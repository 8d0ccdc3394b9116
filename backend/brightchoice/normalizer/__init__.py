"""Normalization stages: attribute mapping, unit conversion, validation."""

from .attribute_map import (
    ATTRIBUTE_MAP,
    AttributeMapping,
    MappedAttribute,
    find_mapping,
    map_attributes,
)
from .unit_converter import (
    ConvertedValue,
    convert_unit,
    extract_numeric,
    extract_unit,
    parse_and_convert,
)
from .validator import ValidationResult, validate_product
from .product_builder import build_normalized_product

__all__ = [
    # Attribute mapping
    "ATTRIBUTE_MAP",
    "AttributeMapping",
    "MappedAttribute",
    "find_mapping",
    "map_attributes",
    # Unit conversion
    "ConvertedValue",
    "convert_unit",
    "extract_numeric",
    "extract_unit",
    "parse_and_convert",
    # Validation
    "ValidationResult",
    "validate_product",
    # Product building
    "build_normalized_product",
]
