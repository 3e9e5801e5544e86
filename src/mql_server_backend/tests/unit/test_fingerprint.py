"""
Unit tests for query fingerprints.
"""

import pytest

from mql_server_backend.core.fingerprint import (
    FINGERPRINT_VERSION,
    QueryFingerprint,
    canonical_specification,
    compute_fingerprint,
)
from mql_server_backend.exceptions import ConstraintValidationError
from mql_server_backend.models.query_schema import (
    AndConstraint,
    AtomicConstraint,
    AtomicConstraintType,
    CacheMode,
    ModelKey,
    OrConstraint,
    range_constraint,
    set_constraint,
)


class TestComputeFingerprint:
    """Test fingerprint stability and sensitivity."""

    def test_is_deterministic(self, make_spec):
        spec = make_spec(group_by=("country",))
        assert compute_fingerprint(spec).checksum == compute_fingerprint(make_spec(group_by=("country",))).checksum

    def test_checksum_is_sha256_hex(self, make_spec):
        checksum = compute_fingerprint(make_spec()).checksum
        assert len(checksum) == 64
        int(checksum, 16)

    def test_group_by_order_is_irrelevant(self, make_spec):
        left = compute_fingerprint(make_spec(group_by=("country", "channel")))
        right = compute_fingerprint(make_spec(group_by=("channel", "country")))
        assert left == right

    def test_equivalent_constraints_share_fingerprint(self, make_spec):
        a = set_constraint("country", ["US", "CA"])
        b = range_constraint("amount", 10, 100)
        left = make_spec(where=AndConstraint((a, b)))
        right = make_spec(where=AndConstraint((b, set_constraint("country", ["CA", "US", "US"]))))
        assert compute_fingerprint(left) == compute_fingerprint(right)

    def test_cache_mode_is_not_part_of_the_key(self, make_spec):
        left = compute_fingerprint(make_spec(cache_mode=CacheMode.READ))
        right = compute_fingerprint(make_spec(cache_mode=CacheMode.IGNORE))
        assert left == right

    @pytest.mark.parametrize("changes", [
        {"metrics": ("revenue", "order_count")},
        {"group_by": ("country",)},
        {"where": set_constraint("country", ["US"])},
        {"order": ("-revenue",)},
        {"limit": 5},
        {"add_time_series": True},
        {"post_processors": ("fill_null_metrics",)},
    ])
    def test_result_affecting_fields_change_the_key(self, make_spec, changes):
        assert compute_fingerprint(make_spec(**changes)) != compute_fingerprint(make_spec())

    def test_model_commit_changes_the_key(self, make_spec):
        other = ModelKey(organization="acme", repo="metrics", branch="main", commit="def456")
        assert compute_fingerprint(make_spec(model_key=other)) != compute_fingerprint(make_spec())

    def test_and_versus_or_differ(self, make_spec):
        a = set_constraint("country", ["US"])
        b = set_constraint("channel", ["web"])
        left = compute_fingerprint(make_spec(where=AndConstraint((a, b))))
        right = compute_fingerprint(make_spec(where=OrConstraint((a, b))))
        assert left != right

    def test_malformed_where_raises(self, make_spec):
        spec = make_spec(where=AtomicConstraint(AtomicConstraintType.SET, "country"))
        with pytest.raises(ConstraintValidationError):
            compute_fingerprint(spec)


class TestCanonicalSpecification:
    """Test the canonical mapping."""

    def test_contents(self, make_spec):
        canonical = canonical_specification(make_spec(group_by=("country", "channel", "country")))
        assert canonical["version"] == FINGERPRINT_VERSION
        assert canonical["group_by"] == ["channel", "country"]
        assert canonical["where"] is None
        assert "cache_mode" not in canonical


class TestQueryFingerprint:
    """Test the fingerprint value object."""

    def test_rejects_short_checksum(self):
        with pytest.raises(ValueError):
            QueryFingerprint(checksum="abc", canonical={})

    def test_str_and_hash(self, make_spec):
        fp = compute_fingerprint(make_spec())
        assert str(fp) == fp.checksum
        assert len({fp, compute_fingerprint(make_spec())}) == 1
