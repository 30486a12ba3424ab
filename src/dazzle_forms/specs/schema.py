"""
Form schema specification types.

Defines the declarative form document: sections, fields, validation rules
and conditional-visibility expressions. Field names mirror the JSON wire
format (camelCase aliases) so schema documents load without translation.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# =============================================================================
# Conditions
# =============================================================================


class ConditionOperatorKind(StrEnum):
    """Leaf operators understood by the condition evaluator."""

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"


class LogicalOperatorKind(StrEnum):
    """Operators for combining child conditions."""

    AND = "and"
    OR = "or"


class ConditionSpec(BaseModel):
    """
    A conditional-visibility expression.

    Either a leaf comparison against another field's value::

        {"field": "shipTo", "operator": "notEquals", "value": "domestic"}

    or a composite of child conditions::

        {"conditions": [...], "logicalOperator": "or"}

    ``operator`` is kept as a plain string: unknown operators are legal
    and evaluate as equality. ``equals`` is the legacy leaf form and wins
    over ``operator`` when both are given.
    """

    field: str | None = None
    operator: str | None = None
    value: Any = None
    equals: Any = None
    conditions: list[ConditionSpec] | None = None
    logical_operator: str | None = Field(default=None, alias="logicalOperator")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def is_compound(self) -> bool:
        """Check if this node combines child conditions."""
        return bool(self.conditions)

    @property
    def uses_legacy_equals(self) -> bool:
        """Check if the deprecated ``equals`` key was supplied (even as null)."""
        return "equals" in self.model_fields_set

    def referenced_fields(self) -> set[str]:
        """Return every field name this expression reads."""
        if self.conditions:
            names: set[str] = set()
            for child in self.conditions:
                names |= child.referenced_fields()
            return names
        return {self.field} if self.field else set()


# =============================================================================
# Validation Rules
# =============================================================================


class CustomValidatorSpec(BaseModel):
    """Reference to a named synchronous cross-field validator."""

    fields: list[str] = Field(default_factory=list)
    validator: str

    model_config = ConfigDict(frozen=True)


class AsyncValidatorSpec(BaseModel):
    """Reference to a named asynchronous field validator.

    ``params`` names companion fields whose live values are passed to the
    validator after the field's own value.
    """

    name: str
    params: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class ValidationRulesSpec(BaseModel):
    """Validation rules attached to a field."""

    required: bool = False
    min: float | None = None
    max: float | None = None
    min_length: int | None = Field(default=None, alias="minLength")
    max_length: int | None = Field(default=None, alias="maxLength")
    pattern: str | None = None
    error_message: str | None = Field(default=None, alias="errorMessage")
    custom_validator: CustomValidatorSpec | None = Field(default=None, alias="customValidator")
    async_validator: AsyncValidatorSpec | None = Field(default=None, alias="asyncValidator")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")


# =============================================================================
# Fields, Sections, Schema
# =============================================================================


class FieldSpec(BaseModel):
    """
    A single named, typed input slot.

    ``type`` is an open tag. Display metadata (label, placeholder, help
    text, widget sizing, ...) is carried through untouched; extra keys are
    preserved for the renderer.
    """

    name: str
    type: str = "string"
    label: str | None = None
    placeholder: str | None = None
    help_text: str | None = Field(default=None, alias="helpText")
    tooltip: str | None = None
    options: list[str] | None = None
    validation: ValidationRulesSpec = Field(default_factory=ValidationRulesSpec)
    conditional: ConditionSpec | None = None
    depends_on: str | None = Field(default=None, alias="dependsOn")
    options_map: dict[str, list[str]] | None = Field(default=None, alias="optionsMap")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    @property
    def is_required(self) -> bool:
        return self.validation.required

    @property
    def is_conditional(self) -> bool:
        return self.conditional is not None

    def options_for(self, values: dict[str, Any]) -> list[str] | None:
        """Effective option list given the current values.

        When the field declares ``dependsOn`` with an ``optionsMap``, the
        options follow the controlling field's value; otherwise the static
        ``options`` apply.
        """
        if self.depends_on and self.options_map is not None:
            controlling = values.get(self.depends_on)
            if isinstance(controlling, str) and controlling in self.options_map:
                return self.options_map[controlling]
            return []
        return self.options


class SectionSpec(BaseModel):
    """A titled group of fields; one step in a multi-step form."""

    title: str
    description: str | None = None
    fields: list[FieldSpec] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class LayoutSpec(BaseModel):
    """Layout hint for renderers."""

    columns: int | None = None
    fields: list[str] | None = None

    model_config = ConfigDict(frozen=True)


class FormSchemaSpec(BaseModel):
    """
    Complete form schema.

    Exactly one of ``fields`` (flat form) or ``sections`` (multi-step form)
    is present. Flattening the sections yields the authoritative field list.
    """

    form_title: str = Field(alias="formTitle")
    form_description: str = Field(default="", alias="formDescription")
    fields: list[FieldSpec] | None = None
    sections: list[SectionSpec] | None = None
    layout: LayoutSpec | None = None

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="after")
    def _check_single_shape(self) -> FormSchemaSpec:
        if self.fields is not None and self.sections is not None:
            raise ValueError("Schema must declare either 'fields' or 'sections', not both")
        if self.fields is None and self.sections is None:
            raise ValueError("Schema must declare 'fields' or 'sections'")
        return self

    @property
    def is_multi_step(self) -> bool:
        return bool(self.sections)

    def all_fields(self) -> list[FieldSpec]:
        """Flattened field list in declaration order."""
        if self.fields is not None:
            return list(self.fields)
        return [f for section in self.sections or [] for f in section.fields]

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.all_fields()]

    def get_field(self, name: str) -> FieldSpec | None:
        """Get a field by name; the last declaration wins on duplicates."""
        found = None
        for f in self.all_fields():
            if f.name == name:
                found = f
        return found

    def section_schema(self, index: int) -> FormSchemaSpec:
        """Sub-schema holding only one section's fields."""
        sections = self.sections or []
        return FormSchemaSpec(
            form_title=self.form_title,
            form_description=self.form_description,
            sections=[sections[index]],
            layout=self.layout,
        )
