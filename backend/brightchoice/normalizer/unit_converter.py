"""Unit extraction and conversion for free-text spec values.

Manufacturer copy mixes units freely ("4,500 lm", "2 years", "3.5 lbs").
Everything here is best-effort: a value that cannot be converted is handed
back with its original unit rather than dropped, and rejection is left to
the validator.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Pattern, Tuple

from brightchoice.config import settings

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


@dataclass(frozen=True)
class ConversionRule:
    """Source-unit pattern -> target unit, by multiplicative factor."""

    source: Pattern[str]
    target: str
    factor: float


@dataclass(frozen=True)
class ConvertedValue:
    """Numeric value tagged with the unit it is expressed in."""

    value: float
    unit: str


def _rule(pattern: str, target: str, factor: float) -> ConversionRule:
    return ConversionRule(re.compile(pattern, re.IGNORECASE), target, factor)


CONVERSIONS: Tuple[ConversionRule, ...] = (
    # Power
    _rule(r"^kw$", "W", 1000),
    _rule(r"^kilowatts?$", "W", 1000),
    _rule(r"^watts?$", "W", 1),
    # Luminous flux
    _rule(r"^klm$", "lm", 1000),
    _rule(r"^kilolumens?$", "lm", 1000),
    _rule(r"^lumens?$", "lm", 1),
    # Colour temperature
    _rule(r"^kelvin$", "K", 1),
    # Time
    _rule(r"^(yr|yrs|years?)$", "hours", 8760),
    _rule(r"^(h|hr|hrs|hours?)$", "hours", 1),
    _rule(r"^(yr|yrs|years?)$", "years", 1),
    _rule(r"^months?$", "years", 1 / 12),
    # Mass
    _rule(r"^lbs?$", "kg", 0.4536),
    _rule(r"^pounds?$", "kg", 0.4536),
    _rule(r"^oz$", "kg", 0.02835),
    _rule(r"^(g|grams?)$", "kg", 0.001),
    # Length
    _rule(r"^mm$", "mm", 1),
    _rule(r"^cm$", "mm", 10),
    _rule(r"^in(ch(es)?)?$", "mm", 25.4),
    _rule(r"^(ft|feet|foot)$", "mm", 304.8),
    # Angle
    _rule(r"^deg(rees?)?$", "°", 1),
)


def round_half_up(value: float, decimals: Optional[int] = None) -> float:
    """Round half away from zero to the configured number of decimals."""
    if decimals is None:
        decimals = settings.VALUE_ROUNDING_DECIMALS
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def extract_numeric(text: str) -> Optional[float]:
    """Extract the first signed decimal number from a string.

    Thousands separators are stripped first, so "4,500 lm" -> 4500.0.

    Returns:
        The number, or None if the text contains no digits
    """
    if not text:
        return None
    match = _NUMBER_RE.search(text.replace(",", ""))
    return float(match.group(0)) if match else None


def extract_unit(text: str) -> str:
    """Return the text following the first number ("4500 lm" -> "lm").

    Returns "" for a bare number or when no number is present.
    """
    if not text:
        return ""
    cleaned = text.replace(",", "").strip()
    match = _NUMBER_RE.search(cleaned)
    if not match:
        return ""
    return cleaned[match.end():].strip()


def convert_unit(value: float, source_unit: str, target_unit: str) -> Optional[float]:
    """Convert a value between units using the static rule table.

    Same unit (case-insensitive) is the identity. The first rule whose
    pattern matches the source unit and whose target matches the target
    unit wins.

    Returns:
        Converted value rounded to the configured decimals, or None if the
        pair is unknown
    """
    if source_unit.strip().lower() == target_unit.strip().lower():
        return value

    target = target_unit.strip().lower()
    for rule in CONVERSIONS:
        if rule.target.lower() == target and rule.source.search(source_unit.strip()):
            return round_half_up(value * rule.factor)

    return None


def parse_and_convert(raw_value: str, target_unit: str) -> Optional[ConvertedValue]:
    """Parse a raw value string and convert it to the target unit.

    - No number: None (the validator treats this as missing).
    - No unit: the number is assumed to already be in the target unit.
    - Unknown conversion: the number is returned with its original unit.
    """
    numeric = extract_numeric(raw_value)
    if numeric is None:
        return None

    source_unit = extract_unit(raw_value)
    if not source_unit:
        return ConvertedValue(value=numeric, unit=target_unit)

    converted = convert_unit(numeric, source_unit, target_unit)
    if converted is None:
        return ConvertedValue(value=numeric, unit=source_unit)
    return ConvertedValue(value=converted, unit=target_unit)
