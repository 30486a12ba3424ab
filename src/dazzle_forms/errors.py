"""
Error types for dazzle forms.

Only schema loading and misuse of the step orchestrator raise. Validation
failures are values (see ``ValidationOutcome``), never exceptions.
"""

from __future__ import annotations


class FormsError(Exception):
    """Base exception for all dazzle forms errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SchemaLoadError(FormsError):
    """
    Raised when a schema document cannot be loaded.

    Examples:
    - File not found or not valid JSON
    - Document does not match the schema model
    - Neither (or both) of 'fields' and 'sections' declared
    """

    pass


class DuplicateFieldError(SchemaLoadError):
    """Raised when the flattened field list repeats a name."""

    def __init__(self, names: list[str]):
        self.names = names
        super().__init__(f"Duplicate field names in schema: {', '.join(names)}")


class ConditionCycleError(SchemaLoadError):
    """Raised when a field's visibility condition references the field itself."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Field '{field_name}' has a condition that references itself")


class StepStateError(FormsError):
    """Raised when the step orchestrator is driven past completion."""

    pass
