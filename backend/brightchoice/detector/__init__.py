"""Spec hashing and change detection."""

from .hash_engine import (
    SPEC_SNAPSHOT_FIELDS,
    build_spec_snapshot,
    canonicalize_snapshot,
    generate_spec_hash,
)
from .change_detector import (
    ChangeDetector,
    ChangeResult,
    FieldChange,
    build_change_summary,
    detect_changes,
)
from .locks import KeyedLock

__all__ = [
    "SPEC_SNAPSHOT_FIELDS",
    "build_spec_snapshot",
    "canonicalize_snapshot",
    "generate_spec_hash",
    "ChangeDetector",
    "ChangeResult",
    "FieldChange",
    "build_change_summary",
    "detect_changes",
    "KeyedLock",
]
