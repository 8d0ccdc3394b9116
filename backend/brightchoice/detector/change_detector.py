"""Change detection and version recording for scraped products.

A product moves between three states on every scrape:

- no record: the orchestrator inserts the row and calls record_initial_version()
- unchanged: the incoming spec hash equals the stored one, nothing is written
- changed: a new ProductVersion plus one ChangeLog row per differing field,
  then the product's hash, timestamp and spec columns are updated

Writes are ordered version first. A failed version insert aborts the whole
change; a failed change-log insert after a good version is logged and the
version is kept, because a version without its change logs is tolerable and
an orphaned change log is not.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from brightchoice.config import settings
from brightchoice.core.exceptions import StorageError, VersionConflictError
from brightchoice.detector.hash_engine import (
    build_spec_snapshot,
    canonicalize_snapshot,
    generate_spec_hash,
    stringify_value,
)
from brightchoice.detector.locks import KeyedLock

logger = structlog.get_logger(__name__)

INITIAL_VERSION_SUMMARY = "Initial version"

# Shared across detector instances so that two runs touching the same
# product in one process never interleave their version writes.
_product_locks = KeyedLock()


@dataclass(frozen=True)
class FieldChange:
    """One field that differs between two snapshots."""

    field_name: str
    old_value: Optional[str]
    new_value: Optional[str]


@dataclass
class ChangeResult:
    """Outcome of one change-detection call.

    Attributes:
        is_new: A product row was created on this call
        is_changed: A new version was written
        version_number: Number of the version written, if any
        changes: Field-level diff that produced the version
        error: Storage error message when part of the write failed
    """

    is_new: bool = False
    is_changed: bool = False
    version_number: Optional[int] = None
    changes: List[FieldChange] = field(default_factory=list)
    error: Optional[str] = None


def detect_changes(
    existing: Mapping[str, Any],
    incoming: Mapping[str, Any],
) -> List[FieldChange]:
    """Field-level diff between two snapshots.

    Compares canonical values over the union of keys, so a field that is
    missing on one side and None on the other is not a change. A field that
    appears or disappears is reported with None on the missing side.

    Returns:
        Changed fields in key order; empty when the snapshots are equivalent
    """
    old = canonicalize_snapshot(existing)
    new = canonicalize_snapshot(incoming)

    changes: List[FieldChange] = []
    for key in sorted(set(existing) | set(incoming)):
        old_value = stringify_value(old.get(key))
        new_value = stringify_value(new.get(key))
        if old_value != new_value:
            changes.append(FieldChange(field_name=key, old_value=old_value, new_value=new_value))

    return changes


def build_change_summary(changes: List[FieldChange]) -> str:
    """Format a diff as "field: old → new" pairs joined by "; "."""
    if not changes:
        return INITIAL_VERSION_SUMMARY
    return "; ".join(f"{c.field_name}: {c.old_value} → {c.new_value}" for c in changes)


class ChangeDetector:
    """Compares incoming specs against the stored product and records versions."""

    def __init__(
        self,
        store,
        max_conflict_retries: Optional[int] = None,
        locks: Optional[KeyedLock] = None,
    ):
        """Initialize the detector.

        Args:
            store: SpecStore used for all reads and writes
            max_conflict_retries: Attempts at claiming a version number before giving up
            locks: Per-product lock registry (defaults to the process-wide one)
        """
        self.store = store
        self.max_conflict_retries = max_conflict_retries or settings.VERSION_CONFLICT_MAX_RETRIES
        self.locks = locks or _product_locks
        self.logger = logger.bind(service="change_detector")

    async def process_product_change(
        self,
        product_id: uuid.UUID,
        existing_product: Mapping[str, Any],
        incoming_specs: Mapping[str, Any],
    ) -> ChangeResult:
        """Detect and record a spec change for an existing product.

        Args:
            product_id: Stored product ID
            existing_product: Stored product record, including its spec_hash.
                Re-read under the product lock; used as-is only when the
                store no longer has the row.
            incoming_specs: Freshly normalized product fields

        Returns:
            ChangeResult; storage failures are reported in .error, never raised
        """
        async with self.locks.acquire(product_id):
            return await self._process_locked(product_id, existing_product, incoming_specs)

    async def _process_locked(
        self,
        product_id: uuid.UUID,
        existing_product: Mapping[str, Any],
        incoming_specs: Mapping[str, Any],
    ) -> ChangeResult:
        # The caller's record was read before the lock; another writer may
        # have moved the hash since.
        try:
            current = await self.store.find_product_by_id(product_id)
        except StorageError as e:
            self.logger.error("product_reload_failed", product_id=str(product_id), error=str(e))
            return ChangeResult(error=str(e))
        if current is not None:
            existing_product = current

        existing_snapshot = build_spec_snapshot(existing_product)
        incoming_snapshot = build_spec_snapshot(incoming_specs)

        new_hash = generate_spec_hash(incoming_snapshot)
        old_hash = existing_product.get("spec_hash")

        if old_hash == new_hash:
            return ChangeResult()

        self.logger.info(
            "change_detected",
            product_id=str(product_id),
            brand=existing_product.get("brand"),
            model=existing_product.get("model"),
            old_hash=old_hash[:8] if old_hash else None,
            new_hash=new_hash[:8],
        )

        changes = detect_changes(existing_snapshot, incoming_snapshot)
        summary = build_change_summary(changes)

        try:
            version_number, version_id = await self._insert_next_version(
                product_id, canonicalize_snapshot(incoming_snapshot), new_hash, summary
            )
        except StorageError as e:
            self.logger.error("version_insert_failed", product_id=str(product_id), error=str(e))
            return ChangeResult(error=str(e))

        error = None
        if changes:
            try:
                await self.store.insert_change_log_entries(product_id, version_id, changes)
            except StorageError as e:
                self.logger.error(
                    "change_log_insert_failed",
                    product_id=str(product_id),
                    version_number=version_number,
                    error=str(e),
                )
                error = str(e)

        try:
            await self.store.update_product_hash_and_timestamp(
                product_id,
                new_hash,
                datetime.now(timezone.utc),
                fields=incoming_snapshot,
            )
        except StorageError as e:
            self.logger.error("product_update_failed", product_id=str(product_id), error=str(e))
            error = str(e)

        return ChangeResult(
            is_changed=True,
            version_number=version_number,
            changes=changes,
            error=error,
        )

    async def record_initial_version(
        self,
        product_id: uuid.UUID,
        snapshot: Mapping[str, Any],
    ) -> ChangeResult:
        """Write version 1 for a freshly inserted product."""
        async with self.locks.acquire(product_id):
            try:
                version_number, _ = await self._insert_next_version(
                    product_id,
                    canonicalize_snapshot(snapshot),
                    generate_spec_hash(snapshot),
                    INITIAL_VERSION_SUMMARY,
                )
            except StorageError as e:
                self.logger.error("initial_version_failed", product_id=str(product_id), error=str(e))
                return ChangeResult(is_new=True, error=str(e))

        return ChangeResult(is_new=True, version_number=version_number)

    async def _insert_next_version(
        self,
        product_id: uuid.UUID,
        snapshot: Dict[str, Any],
        spec_hash: str,
        summary: str,
    ):
        """Claim the next version number and insert the version row.

        A unique-constraint conflict means another writer took the number
        first, so the latest number is re-read and the insert retried.

        Returns:
            (version_number, version_id)

        Raises:
            StorageError: On any storage failure, or VersionConflictError
                once the retries are exhausted
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_conflict_retries),
            retry=retry_if_exception_type(VersionConflictError),
            reraise=True,
        ):
            with attempt:
                version_number = await self.store.find_latest_version_number(product_id) + 1
                try:
                    version_id = await self.store.insert_version(
                        product_id, version_number, snapshot, spec_hash, summary
                    )
                except VersionConflictError:
                    self.logger.warning(
                        "version_conflict",
                        product_id=str(product_id),
                        version_number=version_number,
                        attempt=attempt.retry_state.attempt_number,
                    )
                    raise

        return version_number, version_id
