"""
Per-type value checks for form fields.

Field types are an open tag set. Each known tag maps to a FieldTypeRule
describing what counts as "empty" for required checks and which shape
checks apply to a non-empty value. Unrecognized tags fall back to the
loosest rule (optional text, no bounds).
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

from dazzle_forms.runtime.condition_evaluator import is_empty_value
from dazzle_forms.specs.schema import FieldSpec

# (field, value, compiled pattern, snapshot) -> error messages
ShapeCheck = Callable[[FieldSpec, Any, re.Pattern[str] | None, Mapping[str, Any]], list[str]]


@dataclass(frozen=True)
class FieldTypeRule:
    """Validation behaviour for one field type tag."""

    name: str
    check: ShapeCheck
    is_empty: Callable[[Any], bool] = is_empty_value
    required_message: str | None = None


def _message(field: FieldSpec, default: str) -> str:
    return field.validation.error_message or default


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


# =============================================================================
# Shape Checks
# =============================================================================


def check_plain_text(
    field: FieldSpec, value: Any, pattern: re.Pattern[str] | None, values: Mapping[str, Any]
) -> list[str]:
    if not isinstance(value, str):
        return [_message(field, "Expected text")]
    return []


def check_text(
    field: FieldSpec, value: Any, pattern: re.Pattern[str] | None, values: Mapping[str, Any]
) -> list[str]:
    """Length and pattern bounds for text values."""
    if not isinstance(value, str):
        return [_message(field, "Expected text")]

    rules = field.validation
    errors: list[str] = []
    if rules.min_length and len(value) < rules.min_length:
        errors.append(_message(field, f"Must be at least {rules.min_length} characters"))
    if rules.max_length and len(value) > rules.max_length:
        errors.append(_message(field, f"Must be at most {rules.max_length} characters"))
    if pattern is not None and not pattern.search(value):
        errors.append(_message(field, "Invalid format"))
    return errors


def check_number(
    field: FieldSpec, value: Any, pattern: re.Pattern[str] | None, values: Mapping[str, Any]
) -> list[str]:
    if not _is_number(value):
        return [_message(field, "Expected a number")]

    rules = field.validation
    errors: list[str] = []
    if rules.min is not None and value < rules.min:
        errors.append(_message(field, f"Must be at least {_format_bound(rules.min)}"))
    if rules.max is not None and value > rules.max:
        errors.append(_message(field, f"Must be at most {_format_bound(rules.max)}"))
    return errors


def check_boolean(
    field: FieldSpec, value: Any, pattern: re.Pattern[str] | None, values: Mapping[str, Any]
) -> list[str]:
    if not isinstance(value, bool):
        return [_message(field, "Expected true or false")]
    return []


def check_date(
    field: FieldSpec, value: Any, pattern: re.Pattern[str] | None, values: Mapping[str, Any]
) -> list[str]:
    """Dates travel as ISO ``YYYY-MM-DD`` strings."""
    if not isinstance(value, str):
        return [_message(field, "Expected a date")]
    try:
        date.fromisoformat(value)
    except ValueError:
        return [_message(field, "Invalid date")]
    return []


def check_choice(
    field: FieldSpec, value: Any, pattern: re.Pattern[str] | None, values: Mapping[str, Any]
) -> list[str]:
    if not isinstance(value, str):
        return [_message(field, "Expected text")]
    options = field.options_for(dict(values))
    if options is not None and value not in options:
        return [_message(field, "Invalid option")]
    return []


def check_multi_choice(
    field: FieldSpec, value: Any, pattern: re.Pattern[str] | None, values: Mapping[str, Any]
) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        return [_message(field, "Expected a list of options")]
    options = field.options_for(dict(values))
    if options is not None and any(item not in options for item in value):
        return [_message(field, "Invalid option")]
    return []


def check_list(
    field: FieldSpec, value: Any, pattern: re.Pattern[str] | None, values: Mapping[str, Any]
) -> list[str]:
    if not isinstance(value, list):
        return [_message(field, "Expected a list")]
    return []


def _format_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)


# =============================================================================
# Type Table
# =============================================================================

DEFAULT_FIELD_TYPE = FieldTypeRule(name="string", check=check_plain_text)

FIELD_TYPES: dict[str, FieldTypeRule] = {
    "string": FieldTypeRule(name="string", check=check_text),
    "textarea": FieldTypeRule(name="textarea", check=check_text),
    "number": FieldTypeRule(name="number", check=check_number),
    "boolean": FieldTypeRule(
        name="boolean",
        check=check_boolean,
        is_empty=lambda value: value is None,
    ),
    "date": FieldTypeRule(name="date", check=check_date),
    "radio": FieldTypeRule(name="radio", check=check_choice),
    "file": FieldTypeRule(name="file", check=check_plain_text),
    "signature": FieldTypeRule(
        name="signature",
        check=check_plain_text,
        required_message="Signature is required",
    ),
    "multiselect": FieldTypeRule(name="multiselect", check=check_multi_choice),
    "dropzone": FieldTypeRule(
        name="dropzone",
        check=check_list,
        required_message="At least one file is required",
    ),
}


def resolve_field_type(
    type_tag: str,
    overrides: Mapping[str, FieldTypeRule] | None = None,
) -> FieldTypeRule:
    """Look up the rule for a type tag, falling back to the loosest rule."""
    if overrides and type_tag in overrides:
        return overrides[type_tag]
    return FIELD_TYPES.get(type_tag, DEFAULT_FIELD_TYPE)
