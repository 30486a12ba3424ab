"""
Form session: one schema bound to one value store.

Wires the pieces a host needs for a single form (or a single step):
a FieldValueStore, a VisibilityTracker subscribed to it, and a Ruleset
compiled once per schema reference. Value changes never recompile; only
``set_schema`` with a different schema object does.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from dazzle_forms.config import FormsConfig
from dazzle_forms.runtime.field_types import FieldTypeRule
from dazzle_forms.runtime.ruleset import Ruleset, ValidationOutcome, compile_ruleset
from dazzle_forms.runtime.validator_registry import AsyncValidator, SyncValidator
from dazzle_forms.runtime.value_store import FieldValueStore
from dazzle_forms.runtime.visibility import VisibilityListener, VisibilityTracker
from dazzle_forms.specs.schema import FormSchemaSpec

logger = logging.getLogger(__name__)


class FormSession:
    """Live state and validation for one rendered form."""

    def __init__(
        self,
        schema: FormSchemaSpec,
        *,
        sync_registry: Mapping[str, SyncValidator] | None = None,
        async_registry: Mapping[str, AsyncValidator] | None = None,
        initial_data: Mapping[str, Any] | None = None,
        field_types: Mapping[str, FieldTypeRule] | None = None,
        config: FormsConfig | None = None,
        store: FieldValueStore | None = None,
    ):
        self._sync_registry = sync_registry
        self._async_registry = async_registry
        self._field_types = field_types
        self.config = config or FormsConfig()

        self.store = store if store is not None else FieldValueStore(initial_data)
        if store is not None and initial_data:
            self.store.set_values(initial_data)

        self._schema = schema
        self._ruleset = self._compile(schema)
        self._tracker = VisibilityTracker(schema, self.store).start()

    def _compile(self, schema: FormSchemaSpec) -> Ruleset:
        return compile_ruleset(
            schema,
            self._sync_registry,
            self._async_registry,
            field_types=self._field_types,
            config=self.config,
        )

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    @property
    def schema(self) -> FormSchemaSpec:
        return self._schema

    @property
    def ruleset(self) -> Ruleset:
        return self._ruleset

    def set_schema(self, schema: FormSchemaSpec) -> bool:
        """
        Swap the schema.

        Returns:
            True if the ruleset was recompiled (a different schema object)
        """
        if schema is self._schema:
            return False
        logger.debug("Schema changed to %r, recompiling", schema.form_title)
        self._tracker.close()
        self._schema = schema
        self._ruleset = self._compile(schema)
        self._tracker = VisibilityTracker(schema, self.store).start()
        return True

    # -------------------------------------------------------------------------
    # Values and visibility
    # -------------------------------------------------------------------------

    def set_value(self, name: str, value: Any) -> None:
        self.store.set_value(name, value)

    def set_values(self, values: Mapping[str, Any]) -> None:
        self.store.set_values(values)

    @property
    def values(self) -> dict[str, Any]:
        return self.store.snapshot()

    @property
    def visibility(self) -> MappingProxyType[str, bool]:
        return self._tracker.visibility

    def is_visible(self, name: str) -> bool:
        return self._tracker.is_visible(name)

    def on_visibility_change(self, listener: VisibilityListener) -> Callable[[], None]:
        """Register a visibility listener; returns its remover."""
        return self._tracker.add_listener(listener)

    def visible_fields(self) -> list[str]:
        return [name for name in self._ruleset.field_names if self._tracker.is_visible(name)]

    # -------------------------------------------------------------------------
    # Validation and submission
    # -------------------------------------------------------------------------

    def validate_local(self) -> ValidationOutcome:
        """Per-field and cross-field checks, without async validators."""
        return self._ruleset.validate_local(self.store.snapshot(), dict(self._tracker.visibility))

    async def validate(self) -> ValidationOutcome:
        """Full submit-time validation against the current values."""
        return await self._ruleset.validate(self.store.snapshot(), dict(self._tracker.visibility))

    def payload(self) -> dict[str, Any]:
        """Current values minus anything belonging to a hidden field."""
        return {
            name: value
            for name, value in self.store.snapshot().items()
            if self._tracker.is_visible(name)
        }

    async def submit(self) -> tuple[ValidationOutcome, dict[str, Any] | None]:
        """
        Validate and, when valid, produce the submission payload.

        Returns:
            (outcome, payload); payload is None when validation failed
        """
        outcome = await self.validate()
        if not outcome.valid:
            logger.debug("Submit blocked by %s", outcome.error_fields)
            return outcome, None
        return outcome, self.payload()

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def close(self) -> None:
        self._tracker.close()

    def __enter__(self) -> FormSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
