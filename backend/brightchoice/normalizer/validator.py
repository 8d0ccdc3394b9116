"""Range checks and cross-field validation for normalized products.

Only errors (a missing required field) reject a product. Everything else
(out-of-range values, non-numeric values, an efficiency that doesn't match
lumens/watts) is a warning: logged and attached to the result, never
blocking.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Tuple

import structlog

from brightchoice.config import settings
from brightchoice.normalizer.unit_converter import round_half_up

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ValidationRule:
    """Expected range for one numeric field."""

    field: str
    min: float
    max: float
    required: bool


VALIDATION_RULES: Tuple[ValidationRule, ...] = (
    ValidationRule("watts", 1, 2000, required=True),
    ValidationRule("lumens", 50, 200000, required=True),
    ValidationRule("efficiency", 10, 250, required=False),
    ValidationRule("cct", 2000, 10000, required=False),
    ValidationRule("cri", 50, 100, required=False),
    ValidationRule("lifespan", 10000, 200000, required=False),
    ValidationRule("warranty", 1, 25, required=False),
    ValidationRule("price", 0.01, 50000, required=False),
)


@dataclass
class ValidationResult:
    """Outcome of validating one product.

    Attributes:
        is_valid: False when any error was found
        errors: Reasons the product must not be persisted
        warnings: Suspicious values to flag for review
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _to_number(value: Any) -> Optional[float]:
    """Coerce a field value to float, or None if it isn't numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def validate_product(
    product: Mapping[str, Any],
    efficiency_tolerance: Optional[float] = None,
) -> ValidationResult:
    """Validate a product's normalized numeric fields.

    Args:
        product: Normalized field -> value mapping
        efficiency_tolerance: Allowed lm/W gap between stated and calculated
            efficiency (defaults to settings.EFFICIENCY_TOLERANCE_LM_PER_W)

    Returns:
        ValidationResult with errors and warnings
    """
    if efficiency_tolerance is None:
        efficiency_tolerance = settings.EFFICIENCY_TOLERANCE_LM_PER_W

    errors: List[str] = []
    warnings: List[str] = []

    for rule in VALIDATION_RULES:
        value = product.get(rule.field)

        if _is_missing(value):
            if rule.required:
                errors.append(f"Missing required field: {rule.field}")
            continue

        number = _to_number(value)
        if number is None:
            warnings.append(f"Non-numeric value for {rule.field}: {value}")
            continue

        if number < rule.min or number > rule.max:
            warnings.append(
                f"{rule.field} value {number:g} is outside expected range [{rule.min:g}, {rule.max:g}]"
            )

    # Efficiency cross-check
    watts = _to_number(product.get("watts"))
    lumens = _to_number(product.get("lumens"))
    if watts is not None and lumens is not None and watts > 0 and lumens > 0:
        calculated = round_half_up(lumens / watts, settings.EFFICIENCY_ROUNDING_DECIMALS)
        stated = _to_number(product.get("efficiency"))
        if stated is not None and abs(stated - calculated) > efficiency_tolerance:
            warnings.append(
                f"Stated efficiency ({stated:g}) differs significantly from calculated ({calculated:g} lm/W)"
            )

    is_valid = not errors

    if not is_valid:
        logger.warning("product_validation_failed", errors=errors, model=product.get("model"))
    if warnings:
        logger.debug("product_validation_warnings", warnings=warnings, model=product.get("model"))

    return ValidationResult(is_valid=is_valid, errors=errors, warnings=warnings)
