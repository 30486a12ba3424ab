"""
Tests for the condition expression evaluator.

Covers:
- Leaf operators and their type rules
- Legacy ``equals`` precedence
- Composite AND/OR nesting
- Totality: malformed input never raises
"""

from __future__ import annotations

import pytest

from dazzle_forms.runtime.condition_evaluator import (
    collect_watched_fields,
    evaluate_condition,
    is_empty_value,
)
from dazzle_forms.specs import ConditionSpec


def leaf(field: str, operator: str | None, value: object = None) -> ConditionSpec:
    return ConditionSpec(field=field, operator=operator, value=value)


# =============================================================================
# Leaf Operators
# =============================================================================


class TestEquality:
    def test_equals_matches(self) -> None:
        assert evaluate_condition(leaf("a", "equals", "x"), {"a": "x"}) is True

    def test_equals_mismatch(self) -> None:
        assert evaluate_condition(leaf("a", "equals", "x"), {"a": "y"}) is False

    def test_missing_operator_defaults_to_equality(self) -> None:
        assert evaluate_condition(leaf("a", None, 3), {"a": 3}) is True
        assert evaluate_condition(leaf("a", None, 3), {"a": 4}) is False

    def test_unknown_operator_falls_back_to_equality(self) -> None:
        assert evaluate_condition(leaf("a", "startsWith", "x"), {"a": "x"}) is True
        assert evaluate_condition(leaf("a", "startsWith", "x"), {"a": "xyz"}) is False

    def test_booleans_do_not_equal_numbers(self) -> None:
        assert evaluate_condition(leaf("a", "equals", 1), {"a": True}) is False
        assert evaluate_condition(leaf("a", "equals", True), {"a": True}) is True

    def test_not_equals(self) -> None:
        assert evaluate_condition(leaf("a", "notEquals", "x"), {"a": "y"}) is True
        assert evaluate_condition(leaf("a", "notEquals", "x"), {"a": "x"}) is False

    def test_not_equals_unset_field(self) -> None:
        assert evaluate_condition(leaf("a", "notEquals", "x"), {}) is True


class TestNumericComparison:
    def test_greater_than(self) -> None:
        assert evaluate_condition(leaf("age", "greaterThan", 17), {"age": 18}) is True
        assert evaluate_condition(leaf("age", "greaterThan", 18), {"age": 18}) is False

    def test_less_than(self) -> None:
        assert evaluate_condition(leaf("age", "lessThan", 18), {"age": 17.5}) is True

    @pytest.mark.parametrize("value", ["20", None, True, [20]])
    def test_non_numeric_field_is_false(self, value: object) -> None:
        assert evaluate_condition(leaf("age", "greaterThan", 1), {"age": value}) is False

    def test_non_numeric_target_is_false(self) -> None:
        assert evaluate_condition(leaf("age", "lessThan", "100"), {"age": 5}) is False


class TestContains:
    def test_array_membership(self) -> None:
        values = {"tags": ["red", "blue"]}
        assert evaluate_condition(leaf("tags", "contains", "red"), values) is True
        assert evaluate_condition(leaf("tags", "contains", "green"), values) is False

    def test_substring(self) -> None:
        assert evaluate_condition(leaf("email", "contains", "@"), {"email": "a@b.com"}) is True

    def test_substring_of_non_string_target(self) -> None:
        assert evaluate_condition(leaf("code", "contains", 42), {"code": "A42"}) is True

    def test_contains_on_number_is_false(self) -> None:
        assert evaluate_condition(leaf("n", "contains", 1), {"n": 123}) is False

    def test_not_contains_array(self) -> None:
        values = {"tags": ["red"]}
        assert evaluate_condition(leaf("tags", "notContains", "blue"), values) is True
        assert evaluate_condition(leaf("tags", "notContains", "red"), values) is False

    def test_not_contains_substring(self) -> None:
        assert evaluate_condition(leaf("s", "notContains", "z"), {"s": "abc"}) is True

    def test_not_contains_unset_is_false(self) -> None:
        assert evaluate_condition(leaf("s", "notContains", "z"), {}) is False


class TestEmptiness:
    @pytest.mark.parametrize("value", [None, "", []])
    def test_empty_values(self, value: object) -> None:
        assert evaluate_condition(leaf("f", "isEmpty"), {"f": value}) is True
        assert evaluate_condition(leaf("f", "isNotEmpty"), {"f": value}) is False

    def test_unset_is_empty(self) -> None:
        assert evaluate_condition(leaf("f", "isEmpty"), {}) is True

    @pytest.mark.parametrize("value", ["x", 0, False, ["a"]])
    def test_non_empty_values(self, value: object) -> None:
        assert is_empty_value(value) is False
        assert evaluate_condition(leaf("f", "isNotEmpty"), {"f": value}) is True


# =============================================================================
# Legacy equals
# =============================================================================


class TestLegacyEquals:
    def test_equals_alias(self) -> None:
        condition = ConditionSpec.model_validate({"field": "plan", "equals": "pro"})
        assert evaluate_condition(condition, {"plan": "pro"}) is True
        assert evaluate_condition(condition, {"plan": "free"}) is False

    def test_equals_takes_precedence_over_operator(self) -> None:
        condition = ConditionSpec.model_validate(
            {"field": "plan", "equals": "pro", "operator": "notEquals", "value": "pro"}
        )
        assert evaluate_condition(condition, {"plan": "pro"}) is True

    def test_explicit_null_equals(self) -> None:
        condition = ConditionSpec.model_validate({"field": "plan", "equals": None})
        assert condition.uses_legacy_equals
        assert evaluate_condition(condition, {}) is True


# =============================================================================
# Composite Conditions
# =============================================================================


class TestComposite:
    def test_and_requires_all(self) -> None:
        condition = ConditionSpec(
            conditions=[leaf("a", "equals", 1), leaf("b", "equals", 2)],
            logical_operator="and",
        )
        assert evaluate_condition(condition, {"a": 1, "b": 2}) is True
        assert evaluate_condition(condition, {"a": 1, "b": 3}) is False

    def test_or_requires_any(self) -> None:
        condition = ConditionSpec(
            conditions=[leaf("a", "equals", 1), leaf("b", "equals", 2)],
            logical_operator="or",
        )
        assert evaluate_condition(condition, {"a": 0, "b": 2}) is True
        assert evaluate_condition(condition, {"a": 0, "b": 0}) is False

    def test_default_logical_operator_is_and(self) -> None:
        condition = ConditionSpec(conditions=[leaf("a", "equals", 1), leaf("b", "equals", 2)])
        assert evaluate_condition(condition, {"a": 1, "b": 0}) is False

    def test_nested_tree(self) -> None:
        condition = ConditionSpec.model_validate(
            {
                "logicalOperator": "and",
                "conditions": [
                    {"field": "country", "value": "us"},
                    {
                        "logicalOperator": "or",
                        "conditions": [
                            {"field": "age", "operator": "greaterThan", "value": 20},
                            {"field": "guardian", "operator": "isNotEmpty"},
                        ],
                    },
                ],
            }
        )
        assert evaluate_condition(condition, {"country": "us", "age": 30}) is True
        assert evaluate_condition(condition, {"country": "us", "age": 16, "guardian": "Kim"})
        assert evaluate_condition(condition, {"country": "us", "age": 16}) is False
        assert evaluate_condition(condition, {"country": "ca", "age": 30}) is False

    @pytest.mark.parametrize(
        "children",
        [
            [True, True, True],
            [True, False, True],
            [False, False, False],
            [False, True],
            [True],
            [False],
        ],
    )
    def test_or_and_truth_tables(self, children: list[bool]) -> None:
        values = {f"f{i}": flag for i, flag in enumerate(children)}
        nodes = [leaf(f"f{i}", "equals", True) for i in range(len(children))]

        any_node = ConditionSpec(conditions=nodes, logical_operator="or")
        all_node = ConditionSpec(conditions=nodes, logical_operator="and")

        assert evaluate_condition(any_node, values) is any(children)
        assert evaluate_condition(all_node, values) is all(children)


# =============================================================================
# Totality
# =============================================================================


class TestTotality:
    def test_none_condition_is_satisfied(self) -> None:
        assert evaluate_condition(None, {}) is True

    def test_leaf_without_field_is_satisfied(self) -> None:
        assert evaluate_condition(ConditionSpec(operator="equals", value=1), {}) is True

    def test_accepts_serialized_dicts(self) -> None:
        assert evaluate_condition({"field": "a", "operator": "isEmpty"}, {"a": ""}) is True

    def test_malformed_dict_is_satisfied(self) -> None:
        assert evaluate_condition({"conditions": "not-a-list"}, {}) is True


class TestWatchedFields:
    def test_collects_nested_references(self) -> None:
        conditions = [
            ConditionSpec(conditions=[leaf("a", "equals", 1), leaf("b", "isEmpty")]),
            leaf("c", "equals", 2),
        ]
        assert collect_watched_fields(conditions) == {"a", "b", "c"}
