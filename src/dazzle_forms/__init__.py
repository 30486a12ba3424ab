"""
Dazzle Forms - schema interpretation engine for declarative forms.

Compiles form schemas into validation rulesets, tracks conditional field
visibility as values change, and coordinates multi-step submission.
"""

__version__ = "0.1.0"

from dazzle_forms.config import FormsConfig, load_forms_config
from dazzle_forms.errors import (
    ConditionCycleError,
    DuplicateFieldError,
    FormsError,
    SchemaLoadError,
    StepStateError,
)
from dazzle_forms.runtime import (
    FieldValueStore,
    FormSession,
    Ruleset,
    StepOrchestrator,
    ValidationOutcome,
    ValidatorRegistry,
    VisibilityTracker,
    compile_ruleset,
    default_registries,
    evaluate_condition,
)
from dazzle_forms.schema_loader import load_schema, parse_schema
from dazzle_forms.specs import ConditionSpec, FieldSpec, FormSchemaSpec, SectionSpec

__all__ = [
    "__version__",
    "ConditionCycleError",
    "ConditionSpec",
    "DuplicateFieldError",
    "FieldSpec",
    "FieldValueStore",
    "FormSchemaSpec",
    "FormSession",
    "FormsConfig",
    "FormsError",
    "Ruleset",
    "SchemaLoadError",
    "SectionSpec",
    "StepOrchestrator",
    "StepStateError",
    "ValidationOutcome",
    "ValidatorRegistry",
    "VisibilityTracker",
    "compile_ruleset",
    "default_registries",
    "evaluate_condition",
    "load_forms_config",
    "load_schema",
    "parse_schema",
]
