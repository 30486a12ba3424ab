"""
Condition expression evaluator for conditional field visibility.

Evaluates ConditionSpec trees against a snapshot of field values. The
evaluator is total: malformed nodes and unknown operators never raise.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from dazzle_forms.specs.schema import ConditionOperatorKind, ConditionSpec, LogicalOperatorKind

logger = logging.getLogger(__name__)

# =============================================================================
# Condition Expression Evaluator
# =============================================================================


def evaluate_condition(
    condition: ConditionSpec | Mapping[str, Any] | None,
    values: Mapping[str, Any],
) -> bool:
    """
    Evaluate a condition expression against current field values.

    Args:
        condition: ConditionSpec, or its serialized dict form
        values: Snapshot of field name -> current value

    Returns:
        True if the condition is satisfied. An absent condition is
        always satisfied.
    """
    if condition is None:
        return True

    if not isinstance(condition, ConditionSpec):
        try:
            condition = ConditionSpec.model_validate(condition)
        except ValidationError as e:
            logger.warning("Malformed condition %r treated as satisfied: %s", condition, e)
            return True

    # Compound conditions (AND/OR)
    if condition.conditions:
        results = [evaluate_condition(child, values) for child in condition.conditions]
        if condition.logical_operator == LogicalOperatorKind.OR:
            return any(results)
        return all(results)

    if not condition.field:
        logger.warning("Condition without 'field' treated as satisfied: %r", condition)
        return True

    field_value = values.get(condition.field)

    if condition.uses_legacy_equals:
        return _strict_equals(field_value, condition.equals)

    return _compare(field_value, condition.operator, condition.value)


def _compare(field_value: Any, operator: str | None, target: Any) -> bool:
    """
    Apply a single leaf operator.

    Args:
        field_value: Current value of the referenced field
        operator: Operator name (None or unknown means equality)
        target: The condition's ``value``

    Returns:
        True if the comparison passes
    """
    if operator == ConditionOperatorKind.NOT_EQUALS:
        return not _strict_equals(field_value, target)
    if operator == ConditionOperatorKind.GREATER_THAN:
        return _is_number(field_value) and _is_number(target) and field_value > target
    if operator == ConditionOperatorKind.LESS_THAN:
        return _is_number(field_value) and _is_number(target) and field_value < target
    if operator == ConditionOperatorKind.CONTAINS:
        if isinstance(field_value, list | tuple):
            return any(_strict_equals(item, target) for item in field_value)
        return isinstance(field_value, str) and _as_text(target) in field_value
    if operator == ConditionOperatorKind.NOT_CONTAINS:
        if isinstance(field_value, list | tuple):
            return not any(_strict_equals(item, target) for item in field_value)
        return isinstance(field_value, str) and _as_text(target) not in field_value
    if operator == ConditionOperatorKind.IS_EMPTY:
        return is_empty_value(field_value)
    if operator == ConditionOperatorKind.IS_NOT_EMPTY:
        return not is_empty_value(field_value)

    if operator is not None and operator != ConditionOperatorKind.EQUALS:
        logger.debug("Unknown condition operator %r, comparing for equality", operator)
    return _strict_equals(field_value, target)


def is_empty_value(value: Any) -> bool:
    """None, empty string and empty list count as empty."""
    if value is None or value == "":
        return True
    return isinstance(value, list | tuple) and len(value) == 0


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _strict_equals(left: Any, right: Any) -> bool:
    """Equality that does not conflate booleans with numbers."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return bool(left == right)


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def collect_watched_fields(conditions: list[ConditionSpec]) -> set[str]:
    """Field names that any of the given conditions depend on."""
    watched: set[str] = set()
    for condition in conditions:
        watched |= condition.referenced_fields()
    return watched
