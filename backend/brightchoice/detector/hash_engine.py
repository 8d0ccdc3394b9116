"""Deterministic fingerprints of product spec snapshots.

The spec hash is the only "did anything change" signal in the pipeline, so
canonicalization has to be exact in both directions: formatting noise (key
order, case, surrounding whitespace, 150 vs 150.0 vs Decimal("150.00"))
must not change the hash, and any semantic change must.

Absent fields and fields set to None are indistinguishable: both are
dropped before hashing, and the field-level diff uses the same canonical
form.
"""

import hashlib
import json
import math
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from brightchoice.normalizer.unit_converter import round_half_up

SPEC_SNAPSHOT_FIELDS: Tuple[str, ...] = (
    "watts",
    "lumens",
    "efficiency",
    "cct",
    "cri",
    "lifespan",
    "warranty",
    "price",
    "cert_ul",
    "cert_dlc",
    "cert_energy_star",
)


def build_spec_snapshot(product: Mapping[str, Any]) -> Dict[str, Any]:
    """Project a product onto the fields that matter for change detection."""
    return {name: product.get(name) for name in SPEC_SNAPSHOT_FIELDS}


def _canonical_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        if not math.isfinite(number):
            return None
        rounded = round_half_up(number)
        return int(rounded) if rounded.is_integer() else rounded
    if isinstance(value, str):
        return value.strip().lower()
    return value


def canonicalize_snapshot(snapshot: Mapping[str, Any]) -> Dict[str, Any]:
    """Sort keys, normalize values and drop None entries."""
    canonical: Dict[str, Any] = {}
    for key in sorted(snapshot):
        value = _canonical_value(snapshot[key])
        if value is not None:
            canonical[key] = value
    return canonical


def generate_spec_hash(snapshot: Mapping[str, Any]) -> str:
    """SHA-256 hex digest of the canonical JSON form of a snapshot."""
    payload = json.dumps(
        canonicalize_snapshot(snapshot),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def stringify_value(value: Any) -> Optional[str]:
    """Render a canonical value for change logs (None stays None)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)

