"""
Unit tests for constraint parsing, normalization and evaluation.
"""

from datetime import date, datetime

import pytest

from mql_server_backend.core.constraints import (
    evaluate,
    normalize,
    parse_constraint,
    referenced_dimensions,
    to_canonical_dict,
    validate_constraint,
)
from mql_server_backend.exceptions import ConstraintValidationError
from mql_server_backend.models.query_schema import (
    AndConstraint,
    AtomicConstraint,
    AtomicConstraintType,
    OrConstraint,
    range_constraint,
    set_constraint,
)


class TestParseConstraint:
    """Test dict to tree parsing."""

    def test_parses_nested_tree(self):
        node = parse_constraint({
            "and": [
                {"constraint_type": "SET", "dimension_name": "country", "values": ["US", "CA"]},
                {"or": [
                    {"constraint_type": "RANGE", "dimension_name": "metric_time",
                     "start": "2024-01-01", "stop": "2024-01-31"},
                ]},
            ]
        })

        assert isinstance(node, AndConstraint)
        assert node.kind == "and"
        leaf, inner = node.children
        assert leaf.constraint_type is AtomicConstraintType.SET
        assert leaf.values == ("US", "CA")
        assert isinstance(inner, OrConstraint)
        assert inner.children[0].start == "2024-01-01"

    def test_keys_are_case_insensitive(self):
        node = parse_constraint({"OR": [{"Constraint_Type": "set", "Dimension_Name": "x", "Values": [1]}]})
        assert isinstance(node, OrConstraint)
        assert node.children[0].values == ("1",)

    def test_rejects_unknown_keys(self):
        with pytest.raises(ConstraintValidationError, match="Unknown constraint keys"):
            parse_constraint({"constraint_type": "SET", "dimension_name": "x", "values": [1], "op": "in"})

    def test_rejects_operator_with_extra_keys(self):
        with pytest.raises(ConstraintValidationError):
            parse_constraint({"and": [], "dimension_name": "x"})

    def test_rejects_non_mapping(self):
        with pytest.raises(ConstraintValidationError):
            parse_constraint(["not", "a", "tree"])

    def test_rejects_scalar_values(self):
        with pytest.raises(ConstraintValidationError, match="'values' must be a list"):
            parse_constraint({"constraint_type": "SET", "dimension_name": "x", "values": "US"})


class TestValidateConstraint:
    """Test leaf shape validation."""

    @pytest.mark.parametrize("leaf", [
        AtomicConstraint(AtomicConstraintType.SET, "country"),
        AtomicConstraint(AtomicConstraintType.SET, "country", values=("US",), start=1),
        AtomicConstraint(AtomicConstraintType.RANGE, "amount", start=1),
        AtomicConstraint(AtomicConstraintType.RANGE, "amount", values=("1",), start=1, stop=2),
        AtomicConstraint(AtomicConstraintType.RANGE, "amount", start=5, stop=1),
        AtomicConstraint(AtomicConstraintType.SET, "  ", values=("US",)),
    ])
    def test_malformed_leaves_are_rejected(self, leaf):
        with pytest.raises(ConstraintValidationError):
            validate_constraint(AndConstraint((leaf,)))

    def test_error_carries_dimension_and_suggestions(self):
        with pytest.raises(ConstraintValidationError) as exc_info:
            validate_constraint(AtomicConstraint(AtomicConstraintType.RANGE, "amount", start=1))

        error = exc_info.value
        assert error.dimension_name == "amount"
        assert error.to_dict()["error_code"] == "constraint_validation_error"
        assert "Suggestions" in str(error)

    def test_well_formed_tree_passes(self):
        validate_constraint(OrConstraint((
            set_constraint("country", ["US"]),
            range_constraint("amount", 1, 10),
        )))


class TestNormalize:
    """Test canonical form."""

    def test_child_order_does_not_matter(self):
        a = set_constraint("country", ["US", "CA"])
        b = range_constraint("amount", 10, 100)
        left = normalize(AndConstraint((a, b)))
        right = normalize(AndConstraint((b, a)))
        assert to_canonical_dict(left) == to_canonical_dict(right)

    def test_set_values_are_sorted_and_deduplicated(self):
        node = normalize(set_constraint("country", ["US", "CA", "US"]))
        assert node.values == ("CA", "US")

    def test_flattens_nested_same_operator(self):
        a = set_constraint("country", ["US"])
        b = set_constraint("channel", ["web"])
        c = range_constraint("amount", 1, 2)
        node = normalize(AndConstraint((a, AndConstraint((b, c)))))
        assert isinstance(node, AndConstraint)
        assert len(node.children) == 3
        assert all(isinstance(child, AtomicConstraint) for child in node.children)

    def test_single_child_collapses(self):
        leaf = set_constraint("country", ["US"])
        assert normalize(OrConstraint((AndConstraint((leaf,)),))) == normalize(leaf)

    def test_duplicate_children_removed(self):
        leaf = set_constraint("country", ["US"])
        node = normalize(OrConstraint((leaf, leaf, range_constraint("amount", 0, 1))))
        assert len(node.children) == 2

    def test_normalize_validates(self):
        with pytest.raises(ConstraintValidationError):
            normalize(AndConstraint((AtomicConstraint(AtomicConstraintType.SET, "country"),)))

    def test_referenced_dimensions(self):
        node = AndConstraint((
            set_constraint("country", ["US"]),
            OrConstraint((range_constraint("amount", 0, 1), set_constraint("channel", ["web"]))),
        ))
        assert referenced_dimensions(node) == {"country", "amount", "channel"}


class TestEvaluate:
    """Test boolean semantics."""

    def test_empty_and_is_true_and_empty_or_is_false(self):
        assert evaluate(AndConstraint(()), {"x": 1}) is True
        assert evaluate(OrConstraint(()), {"x": 1}) is False

    def test_set_membership_uses_text_form(self):
        node = set_constraint("orders", ["1", "2"])
        assert evaluate(node, {"orders": 2})
        assert not evaluate(node, {"orders": 3})

    def test_set_membership_on_dates(self):
        node = set_constraint("metric_time", ["2024-01-02"])
        assert evaluate(node, {"metric_time": date(2024, 1, 2)})
        assert evaluate(node, {"metric_time": datetime(2024, 1, 2)})
        assert not evaluate(node, {"metric_time": datetime(2024, 1, 2, 12, 30)})

    def test_range_is_inclusive_numeric(self):
        node = range_constraint("amount", 10, 20)
        assert evaluate(node, {"amount": 10})
        assert evaluate(node, {"amount": 20})
        assert evaluate(node, {"amount": "15"})
        assert not evaluate(node, {"amount": 9.99})
        # numeric, not lexicographic: "9" < "10" as numbers
        assert not evaluate(range_constraint("amount", 10, 100), {"amount": 9})

    def test_range_on_iso_dates(self):
        node = range_constraint("metric_time", "2024-01-01", "2024-01-31")
        assert evaluate(node, {"metric_time": "2024-01-31"})
        assert evaluate(node, {"metric_time": datetime(2024, 1, 15, 8)})
        assert not evaluate(node, {"metric_time": "2024-02-01"})

    def test_missing_or_null_value_is_false(self):
        node = set_constraint("country", ["US"])
        assert not evaluate(node, {})
        assert not evaluate(node, {"country": None})
        assert not evaluate(range_constraint("amount", 0, 10), {"amount": float("nan")})

    def test_bare_scalar_is_tested_against_every_leaf(self):
        node = OrConstraint((set_constraint("a", ["x"]), range_constraint("b", 5, 6)))
        assert evaluate(node, "x")
        assert evaluate(node, 5)
        assert not evaluate(node, 7)

    def test_nested_combination(self):
        node = parse_constraint({"and": [
            {"constraint_type": "SET", "dimension_name": "country", "values": ["US", "CA"]},
            {"or": [
                {"constraint_type": "SET", "dimension_name": "channel", "values": ["store"]},
                {"constraint_type": "RANGE", "dimension_name": "amount", "start": 90, "stop": 200},
            ]},
        ]})
        assert evaluate(node, {"country": "US", "channel": "web", "amount": 100})
        assert evaluate(node, {"country": "CA", "channel": "store", "amount": 1})
        assert not evaluate(node, {"country": "CA", "channel": "web", "amount": 50})
        assert not evaluate(node, {"country": "MX", "channel": "store", "amount": 100})

    def test_normalized_tree_evaluates_like_original(self):
        node = OrConstraint((
            AndConstraint((set_constraint("country", ["US"]), range_constraint("amount", 50, 150))),
            set_constraint("channel", ["store"]),
        ))
        rows = [
            {"country": "US", "channel": "web", "amount": 100},
            {"country": "US", "channel": "web", "amount": 10},
            {"country": "CA", "channel": "store", "amount": 10},
        ]
        assert [evaluate(node, r) for r in rows] == [evaluate(normalize(node), r) for r in rows]

    def test_malformed_leaf_raises(self):
        with pytest.raises(ConstraintValidationError):
            evaluate(AtomicConstraint(AtomicConstraintType.RANGE, "amount", start=1), {"amount": 1})
