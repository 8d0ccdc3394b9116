"""Tests for change detection, version recording and per-product locking."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio

from brightchoice.core.exceptions import StorageError, VersionConflictError
from brightchoice.detector.change_detector import (
    ChangeDetector,
    FieldChange,
    build_change_summary,
    detect_changes,
)
from brightchoice.detector.hash_engine import build_spec_snapshot, generate_spec_hash
from brightchoice.detector.locks import KeyedLock
from brightchoice.services.spec_store import SpecStore


PRODUCT_FIELDS = {
    "brand": "Acuity Brands",
    "model": "LBL4 LP840",
    "category": "Troffer",
    "watts": 38.0,
    "lumens": 4500.0,
    "efficiency": 118.4,
    "cct": 4000.0,
    "cri": 80.0,
    "lifespan": 50000.0,
    "warranty": 5.0,
    "price": 150.00,
    "state_province": "TX",
    "currency": "USD",
}


@pytest.fixture
def mock_store():
    """SpecStore double with every method as an AsyncMock."""
    store = AsyncMock(spec=SpecStore)
    store.find_latest_version_number.return_value = 1
    store.insert_version.return_value = uuid4()
    store.find_product_by_id.return_value = None
    return store


@pytest.fixture
def existing_product():
    """Stored product record whose spec_hash matches its own columns."""
    return {
        **PRODUCT_FIELDS,
        "id": uuid4(),
        "spec_hash": generate_spec_hash(build_spec_snapshot(PRODUCT_FIELDS)),
    }


@pytest_asyncio.fixture
async def stored_product(store, brand_config):
    """Product inserted through the store with its initial version."""
    detector = ChangeDetector(store, locks=KeyedLock())
    snapshot = build_spec_snapshot(PRODUCT_FIELDS)
    product_id = await store.insert_product({
        **PRODUCT_FIELDS,
        "brand_id": brand_config.id,
        "spec_hash": generate_spec_hash(snapshot),
        "last_scraped_at": datetime.now(timezone.utc),
    })
    await detector.record_initial_version(product_id, snapshot)
    return product_id


# ============================================================================
# TESTS: FIELD DIFF
# ============================================================================

class TestDetectChanges:
    """Tests for detect_changes / build_change_summary."""

    def test_price_change(self):
        changes = detect_changes({"price": Decimal("150.00")}, {"price": 165.00})

        assert changes == [FieldChange(field_name="price", old_value="150", new_value="165")]

    def test_no_changes_for_equivalent_snapshots(self):
        old = build_spec_snapshot({"watts": Decimal("38.00"), "price": 150})
        new = build_spec_snapshot({"price": 150.0, "watts": 38})

        assert detect_changes(old, new) == []

    def test_missing_and_none_are_the_same(self):
        assert detect_changes({"cri": None}, {}) == []

    def test_field_appearing_and_disappearing(self):
        changes = detect_changes({"cct": 4000}, {"cri": 80})

        assert changes == [
            FieldChange(field_name="cct", old_value="4000", new_value=None),
            FieldChange(field_name="cri", old_value=None, new_value="80"),
        ]

    def test_bool_rendering(self):
        changes = detect_changes({"cert_ul": False}, {"cert_ul": True})

        assert changes == [FieldChange(field_name="cert_ul", old_value="false", new_value="true")]

    def test_summary(self):
        summary = build_change_summary([
            FieldChange("price", "150", "165"),
            FieldChange("watts", "38", "40"),
        ])

        assert summary == "price: 150 → 165; watts: 38 → 40"

    def test_summary_without_prior_snapshot(self):
        assert build_change_summary([]) == "Initial version"


# ============================================================================
# TESTS: CHANGE DETECTOR (MOCKED STORE)
# ============================================================================

class TestChangeDetectorFailures:
    """State transitions and failure semantics against a mocked store."""

    async def test_unchanged_writes_nothing(self, mock_store, existing_product, locks):
        detector = ChangeDetector(mock_store, locks=locks)

        result = await detector.process_product_change(
            existing_product["id"], existing_product, dict(PRODUCT_FIELDS)
        )

        assert result.is_new is False
        assert result.is_changed is False
        mock_store.find_latest_version_number.assert_not_called()
        mock_store.insert_version.assert_not_called()
        mock_store.update_product_hash_and_timestamp.assert_not_called()

    async def test_changed_writes_version_logs_and_hash(self, mock_store, existing_product, locks):
        detector = ChangeDetector(mock_store, locks=locks)
        incoming = {**PRODUCT_FIELDS, "price": 165.00}

        result = await detector.process_product_change(existing_product["id"], existing_product, incoming)

        assert result.is_changed is True
        assert result.version_number == 2
        assert result.error is None
        mock_store.insert_version.assert_awaited_once()
        args = mock_store.insert_version.await_args.args
        assert args[1] == 2
        assert args[4] == "price: 150 → 165"
        mock_store.insert_change_log_entries.assert_awaited_once()
        mock_store.update_product_hash_and_timestamp.assert_awaited_once()
        new_hash = mock_store.update_product_hash_and_timestamp.await_args.args[1]
        assert new_hash == generate_spec_hash(build_spec_snapshot(incoming))

    async def test_version_insert_failure_aborts_change(self, mock_store, existing_product, locks):
        mock_store.insert_version.side_effect = StorageError("insert_version", "connection reset")
        detector = ChangeDetector(mock_store, locks=locks)

        result = await detector.process_product_change(
            existing_product["id"], existing_product, {**PRODUCT_FIELDS, "price": 165.00}
        )

        assert result.is_changed is False
        assert "connection reset" in result.error
        mock_store.insert_change_log_entries.assert_not_called()
        mock_store.update_product_hash_and_timestamp.assert_not_called()

    async def test_change_log_failure_keeps_version(self, mock_store, existing_product, locks):
        mock_store.insert_change_log_entries.side_effect = StorageError(
            "insert_change_log_entries", "disk full"
        )
        detector = ChangeDetector(mock_store, locks=locks)

        result = await detector.process_product_change(
            existing_product["id"], existing_product, {**PRODUCT_FIELDS, "price": 165.00}
        )

        assert result.is_changed is True
        assert result.version_number == 2
        assert "disk full" in result.error
        mock_store.update_product_hash_and_timestamp.assert_awaited_once()

    async def test_version_conflict_is_retried(self, mock_store, existing_product, locks):
        version_id = uuid4()
        mock_store.find_latest_version_number.side_effect = [1, 2]
        mock_store.insert_version.side_effect = [
            VersionConflictError(str(existing_product["id"]), 2),
            version_id,
        ]
        detector = ChangeDetector(mock_store, locks=locks)

        result = await detector.process_product_change(
            existing_product["id"], existing_product, {**PRODUCT_FIELDS, "price": 165.00}
        )

        assert result.is_changed is True
        assert result.version_number == 3
        assert mock_store.insert_version.await_count == 2
        assert mock_store.insert_change_log_entries.await_args.args[1] == version_id

    async def test_version_conflict_gives_up(self, mock_store, existing_product, locks):
        mock_store.insert_version.side_effect = VersionConflictError(str(existing_product["id"]), 2)
        detector = ChangeDetector(mock_store, max_conflict_retries=2, locks=locks)

        result = await detector.process_product_change(
            existing_product["id"], existing_product, {**PRODUCT_FIELDS, "price": 165.00}
        )

        assert result.is_changed is False
        assert result.error is not None
        assert mock_store.insert_version.await_count == 2
        mock_store.update_product_hash_and_timestamp.assert_not_called()

    async def test_reload_failure_writes_nothing(self, mock_store, existing_product, locks):
        mock_store.find_product_by_id.side_effect = StorageError("find_product_by_id", "connection reset")
        detector = ChangeDetector(mock_store, locks=locks)

        result = await detector.process_product_change(
            existing_product["id"], existing_product, {**PRODUCT_FIELDS, "price": 165.00}
        )

        assert result.is_changed is False
        assert "connection reset" in result.error
        mock_store.insert_version.assert_not_called()
        mock_store.update_product_hash_and_timestamp.assert_not_called()

    async def test_stored_hash_wins_over_stale_record(self, mock_store, existing_product, locks):
        incoming = {**PRODUCT_FIELDS, "price": 165.00}
        mock_store.find_product_by_id.return_value = {
            **existing_product,
            "price": Decimal("165.00"),
            "spec_hash": generate_spec_hash(build_spec_snapshot(incoming)),
        }
        detector = ChangeDetector(mock_store, locks=locks)

        result = await detector.process_product_change(existing_product["id"], existing_product, incoming)

        assert result.is_changed is False
        mock_store.find_product_by_id.assert_awaited_once_with(existing_product["id"])
        mock_store.insert_version.assert_not_called()

    async def test_initial_version(self, mock_store, locks):
        mock_store.find_latest_version_number.return_value = 0
        detector = ChangeDetector(mock_store, locks=locks)
        product_id = uuid4()

        result = await detector.record_initial_version(product_id, build_spec_snapshot(PRODUCT_FIELDS))

        assert result.is_new is True
        assert result.version_number == 1
        args = mock_store.insert_version.await_args.args
        assert args[0] == product_id
        assert args[1] == 1
        assert args[4] == "Initial version"


# ============================================================================
# TESTS: CHANGE DETECTOR (SQLITE)
# ============================================================================

class TestChangeDetectorPersistence:
    """End-to-end change recording through SQLAlchemySpecStore."""

    async def test_price_change_scenario(self, store, stored_product, locks):
        detector = ChangeDetector(store, locks=locks)
        existing = await store.find_existing_product("Acuity Brands", "LBL4 LP840", "TX")

        result = await detector.process_product_change(
            stored_product, existing, {**PRODUCT_FIELDS, "price": 165.00}
        )

        assert result.is_changed is True
        assert result.version_number == 2

        logs = await store.list_change_logs(stored_product)
        assert [(log.field_name, log.old_value, log.new_value) for log in logs] == [
            ("price", "150", "165")
        ]

        versions = await store.list_versions(stored_product)
        assert [v.version_number for v in versions] == [1, 2]
        assert versions[0].change_summary == "Initial version"
        assert versions[1].change_summary == "price: 150 → 165"
        assert logs[0].product_version_id == versions[1].id

        updated = await store.find_existing_product("Acuity Brands", "LBL4 LP840", "TX")
        assert updated["price"] == Decimal("165.00")
        assert updated["spec_hash"] == versions[1].spec_hash
        assert updated["last_scraped_at"] is not None

    async def test_same_data_twice_creates_one_version(self, store, stored_product, locks):
        detector = ChangeDetector(store, locks=locks)
        incoming = {**PRODUCT_FIELDS, "lumens": 4800.0}

        first = await detector.process_product_change(
            stored_product,
            await store.find_existing_product("Acuity Brands", "LBL4 LP840", "TX"),
            incoming,
        )
        second = await detector.process_product_change(
            stored_product,
            await store.find_existing_product("Acuity Brands", "LBL4 LP840", "TX"),
            incoming,
        )

        assert first.is_changed is True
        assert second.is_changed is False
        assert len(await store.list_versions(stored_product)) == 2

    async def test_reordered_keys_are_not_a_change(self, store, stored_product, locks):
        detector = ChangeDetector(store, locks=locks)
        existing = await store.find_existing_product("Acuity Brands", "LBL4 LP840", "TX")

        result = await detector.process_product_change(
            stored_product, existing, dict(reversed(list(PRODUCT_FIELDS.items())))
        )

        assert result.is_changed is False
        assert len(await store.list_versions(stored_product)) == 1

    async def test_concurrent_scrapes_from_one_stale_read(self, store, stored_product, locks):
        detector = ChangeDetector(store, locks=locks)
        stale = await store.find_existing_product("Acuity Brands", "LBL4 LP840", "TX")
        incoming = {**PRODUCT_FIELDS, "price": 165.00}

        results = await asyncio.gather(
            detector.process_product_change(stored_product, stale, incoming),
            detector.process_product_change(stored_product, dict(stale), incoming),
        )

        assert sorted(r.is_changed for r in results) == [False, True]
        versions = await store.list_versions(stored_product)
        assert [v.version_number for v in versions] == [1, 2]
        assert len(await store.list_change_logs(stored_product)) == 1


# ============================================================================
# TESTS: KEYED LOCK
# ============================================================================

class TestKeyedLock:
    """Tests for KeyedLock."""

    async def test_same_key_is_serialized(self, locks):
        order = []

        async def worker(name):
            async with locks.acquire("product-1"):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert order == ["a-start", "a-end", "b-start", "b-end"]

    async def test_different_keys_run_concurrently(self, locks):
        order = []

        async def worker(key):
            async with locks.acquire(key):
                order.append(f"{key}-start")
                await asyncio.sleep(0.01)
                order.append(f"{key}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert order[:2] == ["a-start", "b-start"]

    async def test_locks_are_released(self, locks):
        async with locks.acquire("product-1"):
            assert len(locks) == 1

        assert len(locks) == 0

    async def test_concurrent_changes_to_one_product_do_not_fork_versions(
        self, mock_store, existing_product, locks
    ):
        versions = []

        async def find_latest(product_id):
            await asyncio.sleep(0)
            return len(versions) + 1

        async def insert_version(product_id, version_number, *args):
            await asyncio.sleep(0)
            versions.append(version_number)
            return uuid4()

        mock_store.find_latest_version_number.side_effect = find_latest
        mock_store.insert_version.side_effect = insert_version
        detector = ChangeDetector(mock_store, locks=locks)

        await asyncio.gather(*[
            detector.process_product_change(
                existing_product["id"], existing_product, {**PRODUCT_FIELDS, "price": price}
            )
            for price in (160.0, 170.0, 180.0)
        ])

        assert versions == [2, 3, 4]

    async def test_concurrent_identical_changes_write_one_version(
        self, mock_store, existing_product, locks
    ):
        row = dict(existing_product)
        versions = []

        async def find_product_by_id(product_id):
            await asyncio.sleep(0)
            return dict(row)

        async def find_latest(product_id):
            return len(versions) + 1

        async def insert_version(product_id, version_number, *args):
            await asyncio.sleep(0)
            versions.append(version_number)
            return uuid4()

        async def update_product(product_id, spec_hash, scraped_at, fields=None):
            await asyncio.sleep(0)
            row.update(fields or {})
            row["spec_hash"] = spec_hash

        mock_store.find_product_by_id.side_effect = find_product_by_id
        mock_store.find_latest_version_number.side_effect = find_latest
        mock_store.insert_version.side_effect = insert_version
        mock_store.update_product_hash_and_timestamp.side_effect = update_product
        detector = ChangeDetector(mock_store, locks=locks)
        incoming = {**PRODUCT_FIELDS, "price": 165.00}

        await asyncio.gather(*[
            detector.process_product_change(existing_product["id"], existing_product, incoming)
            for _ in range(2)
        ])

        assert versions == [2]
        assert mock_store.update_product_hash_and_timestamp.await_count == 1
