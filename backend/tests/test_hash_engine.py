"""Tests for spec snapshots and hashing."""

from decimal import Decimal

from brightchoice.detector.hash_engine import (
    SPEC_SNAPSHOT_FIELDS,
    build_spec_snapshot,
    canonicalize_snapshot,
    generate_spec_hash,
    stringify_value,
)


BASE_SNAPSHOT = {
    "watts": 38,
    "lumens": 4500,
    "efficiency": 118.42,
    "cct": 4000,
    "cri": 80,
    "lifespan": 50000,
    "warranty": 5,
    "price": 150.0,
    "cert_ul": True,
    "cert_dlc": False,
    "cert_energy_star": None,
}


class TestSpecSnapshot:
    """Tests for build_spec_snapshot / canonicalize_snapshot."""

    def test_snapshot_projects_change_relevant_fields(self):
        product = {**BASE_SNAPSHOT, "model": "CR22", "voltage": "120-277V"}

        snapshot = build_spec_snapshot(product)

        assert tuple(snapshot) == SPEC_SNAPSHOT_FIELDS
        assert "model" not in snapshot

    def test_snapshot_fills_absent_fields_with_none(self):
        snapshot = build_spec_snapshot({"watts": 38})

        assert snapshot["watts"] == 38
        assert snapshot["price"] is None

    def test_canonical_form(self):
        canonical = canonicalize_snapshot({
            "watts": Decimal("150.00"),
            "lumens": 4500.004,
            "efficiency": 118.425,
            "name": "  Troffer ",
            "cert_ul": True,
            "cert_dlc": None,
        })

        assert canonical == {
            "cert_ul": True,
            "efficiency": 118.43,
            "lumens": 4500,
            "name": "troffer",
            "watts": 150,
        }
        assert list(canonical) == sorted(canonical)
        assert isinstance(canonical["watts"], int)
        assert canonical["cert_ul"] is True


class TestGenerateSpecHash:
    """Tests for generate_spec_hash."""

    def test_hash_is_lowercase_sha256_hex(self):
        spec_hash = generate_spec_hash(BASE_SNAPSHOT)

        assert len(spec_hash) == 64
        assert spec_hash == spec_hash.lower()
        int(spec_hash, 16)

    def test_hash_is_deterministic(self):
        assert generate_spec_hash(BASE_SNAPSHOT) == generate_spec_hash(dict(BASE_SNAPSHOT))

    def test_hash_ignores_key_order(self):
        reordered = dict(reversed(list(BASE_SNAPSHOT.items())))

        assert generate_spec_hash(reordered) == generate_spec_hash(BASE_SNAPSHOT)

    def test_hash_ignores_string_case_and_whitespace(self):
        assert generate_spec_hash({"dimming": " 0-10V "}) == generate_spec_hash({"dimming": "0-10v"})

    def test_hash_ignores_numeric_representation(self):
        a = generate_spec_hash({"price": 150, "watts": 38})
        b = generate_spec_hash({"price": Decimal("150.00"), "watts": 38.0})

        assert a == b

    def test_missing_and_none_hash_identically(self):
        assert generate_spec_hash({"watts": 38, "cri": None}) == generate_spec_hash({"watts": 38})

    def test_rounding_below_two_decimals_is_not_a_change(self):
        assert generate_spec_hash({"watts": 38.001}) == generate_spec_hash({"watts": 38})

    def test_any_semantic_change_changes_the_hash(self):
        original = generate_spec_hash(BASE_SNAPSHOT)

        for field, new_value in [
            ("watts", 38.5),
            ("price", 165.0),
            ("cert_ul", False),
            ("cert_energy_star", True),
            ("cri", None),
        ]:
            changed = {**BASE_SNAPSHOT, field: new_value}
            assert generate_spec_hash(changed) != original, field

    def test_bool_is_not_confused_with_number(self):
        assert generate_spec_hash({"cert_ul": True}) != generate_spec_hash({"cert_ul": 1})


class TestStringifyValue:
    """Tests for stringify_value."""

    def test_values(self):
        assert stringify_value(None) is None
        assert stringify_value(True) == "true"
        assert stringify_value(False) == "false"
        assert stringify_value(150) == "150"
        assert stringify_value(118.43) == "118.43"
        assert stringify_value("ip65") == "ip65"
