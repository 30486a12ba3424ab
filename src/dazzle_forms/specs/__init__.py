"""
Specification types for dazzle forms.
"""

from .schema import (
    AsyncValidatorSpec,
    ConditionOperatorKind,
    ConditionSpec,
    CustomValidatorSpec,
    FieldSpec,
    FormSchemaSpec,
    LayoutSpec,
    LogicalOperatorKind,
    SectionSpec,
    ValidationRulesSpec,
)

__all__ = [
    "AsyncValidatorSpec",
    "ConditionOperatorKind",
    "ConditionSpec",
    "CustomValidatorSpec",
    "FieldSpec",
    "FormSchemaSpec",
    "LayoutSpec",
    "LogicalOperatorKind",
    "SectionSpec",
    "ValidationRulesSpec",
]
