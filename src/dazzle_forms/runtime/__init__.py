"""
Runtime engine for declarative forms.

- condition_evaluator: conditional-visibility expressions
- ruleset: schema -> validation ruleset compiler
- visibility: reactive visibility map over a value store
- step_orchestrator: multi-step submission
"""

from dazzle_forms.runtime.condition_evaluator import evaluate_condition, is_empty_value
from dazzle_forms.runtime.field_types import FIELD_TYPES, FieldTypeRule, resolve_field_type
from dazzle_forms.runtime.remote_validators import http_async_validator
from dazzle_forms.runtime.ruleset import Ruleset, ValidationOutcome, compile_ruleset
from dazzle_forms.runtime.session import FormSession
from dazzle_forms.runtime.step_orchestrator import (
    StepOrchestrator,
    StepState,
    sign_step_state,
    verify_step_state,
)
from dazzle_forms.runtime.validator_registry import ValidatorRegistry, default_registries
from dazzle_forms.runtime.value_store import FieldValueStore, Subscription
from dazzle_forms.runtime.visibility import VisibilityTracker

__all__ = [
    "FIELD_TYPES",
    "FieldTypeRule",
    "FieldValueStore",
    "FormSession",
    "Ruleset",
    "StepOrchestrator",
    "StepState",
    "Subscription",
    "ValidationOutcome",
    "ValidatorRegistry",
    "VisibilityTracker",
    "compile_ruleset",
    "default_registries",
    "evaluate_condition",
    "http_async_validator",
    "is_empty_value",
    "resolve_field_type",
    "sign_step_state",
    "verify_step_state",
]
