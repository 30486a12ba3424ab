"""
Ruleset compiler for form schemas.

Compiles a FormSchemaSpec into an immutable Ruleset once per schema. The
ruleset validates a snapshot of field values in three ordered phases:

1. Per-field checks (required, type shape, bounds, pattern)
2. Cross-field checks (named sync validators over several fields)
3. Async checks (named async validators, awaited concurrently)

A later phase only runs when every earlier phase passed, so users never
see a remote validation failure while a cheaper local check still fails.

Fields hidden by their visibility condition are skipped entirely: a hidden
required field never blocks submission.

Unknown validator names are configuration errors. They are logged at
compile time and the reference is dropped (fail-open).
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from dazzle_forms.config import FormsConfig
from dazzle_forms.logging import log_with_context
from dazzle_forms.runtime.condition_evaluator import is_empty_value
from dazzle_forms.runtime.field_types import FieldTypeRule, resolve_field_type
from dazzle_forms.runtime.validator_registry import AsyncValidator, SyncValidator
from dazzle_forms.specs.schema import FieldSpec, FormSchemaSpec

logger = logging.getLogger(__name__)


class ValidationOutcome(BaseModel):
    """Result of validating a value snapshot."""

    valid: bool = True
    errors: dict[str, list[str]] = Field(default_factory=dict)

    @property
    def error_fields(self) -> list[str]:
        return list(self.errors)

    def first_error(self, name: str) -> str | None:
        messages = self.errors.get(name)
        return messages[0] if messages else None


def _outcome(errors: dict[str, list[str]]) -> ValidationOutcome:
    return ValidationOutcome(valid=not errors, errors=errors)


def _is_visible(name: str, visibility: Mapping[str, bool] | None) -> bool:
    if visibility is None:
        return True
    return visibility.get(name, True)


# =============================================================================
# Compiled Checks
# =============================================================================


@dataclass(frozen=True)
class CompiledField:
    """Per-field check derived from the field's type and validation block."""

    spec: FieldSpec
    rule: FieldTypeRule
    pattern: re.Pattern[str] | None
    required_message: str

    @property
    def name(self) -> str:
        return self.spec.name

    def check(self, values: Mapping[str, Any]) -> list[str]:
        value = values.get(self.name)
        if self.rule.is_empty(value):
            if self.spec.is_required:
                return [self.required_message]
            return []
        return self.rule.check(self.spec, value, self.pattern, values)


@dataclass(frozen=True)
class CrossFieldCheck:
    """A named sync validator over several fields."""

    owner: str
    fields: tuple[str, ...]
    validator_name: str
    message: str
    function: SyncValidator

    @property
    def targets(self) -> tuple[str, ...]:
        """Fields passed to the validator and given the error message on failure."""
        return self.fields or (self.owner,)


@dataclass(frozen=True)
class AsyncCheck:
    """A named async validator bound to one field plus companion fields."""

    field_name: str
    validator_name: str
    params: tuple[str, ...]
    message: str
    function: AsyncValidator


# =============================================================================
# Ruleset
# =============================================================================


@dataclass(frozen=True)
class Ruleset:
    """Compiled, immutable validation rules for one schema."""

    fields: tuple[CompiledField, ...]
    cross_field_checks: tuple[CrossFieldCheck, ...] = ()
    async_checks: tuple[AsyncCheck, ...] = ()
    async_error_message: str = "Unable to validate this field right now"

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def check_fields(
        self,
        values: Mapping[str, Any],
        visibility: Mapping[str, bool] | None = None,
    ) -> dict[str, list[str]]:
        """Phase 1: required, shape and bound checks for visible fields."""
        errors: dict[str, list[str]] = {}
        for compiled in self.fields:
            if not _is_visible(compiled.name, visibility):
                continue
            messages = compiled.check(values)
            if messages:
                errors[compiled.name] = messages
        return errors

    def check_cross_field(
        self,
        values: Mapping[str, Any],
        visibility: Mapping[str, bool] | None = None,
    ) -> dict[str, list[str]]:
        """Phase 2: cross-field validators.

        A check is skipped when its owning field or any field it names is
        hidden. Failure attaches the message to every named field.
        """
        errors: dict[str, list[str]] = {}
        for check in self.cross_field_checks:
            involved = (check.owner, *check.fields)
            if not all(_is_visible(name, visibility) for name in involved):
                continue

            names = check.targets
            restricted = {name: values.get(name) for name in names}
            try:
                passed = bool(check.function(restricted, list(names)))
            except Exception:
                logger.warning(
                    "Cross-field validator %r raised for field %r; treating as passed",
                    check.validator_name,
                    check.owner,
                    exc_info=True,
                )
                continue

            if not passed:
                for name in check.targets:
                    messages = errors.setdefault(name, [])
                    if check.message not in messages:
                        messages.append(check.message)
        return errors

    async def check_async(
        self,
        values: Mapping[str, Any],
        visibility: Mapping[str, bool] | None = None,
    ) -> dict[str, list[str]]:
        """Phase 3: async validators, awaited concurrently.

        Each validator receives the field's current value followed by the
        current values of its companion fields, read when the call is made.
        Empty values are skipped; required semantics belong to phase 1.
        """
        pending = [
            check
            for check in self.async_checks
            if _is_visible(check.field_name, visibility)
            and not is_empty_value(values.get(check.field_name))
        ]
        if not pending:
            return {}

        results = await asyncio.gather(*(self._run_async(check, values) for check in pending))

        errors: dict[str, list[str]] = {}
        for check, message in zip(pending, results, strict=True):
            if message is not None:
                errors.setdefault(check.field_name, []).append(message)
        return errors

    async def _run_async(self, check: AsyncCheck, values: Mapping[str, Any]) -> str | None:
        value = values.get(check.field_name)
        companions = [values.get(name) for name in check.params]
        try:
            passed = await check.function(value, *companions)
        except Exception:
            logger.warning(
                "Async validator %r failed for field %r",
                check.validator_name,
                check.field_name,
                exc_info=True,
            )
            return self.async_error_message
        return None if passed else check.message

    def validate_local(
        self,
        values: Mapping[str, Any],
        visibility: Mapping[str, bool] | None = None,
    ) -> ValidationOutcome:
        """Run the synchronous phases only."""
        errors = self.check_fields(values, visibility)
        if errors:
            return _outcome(errors)
        return _outcome(self.check_cross_field(values, visibility))

    async def validate(
        self,
        values: Mapping[str, Any],
        visibility: Mapping[str, bool] | None = None,
    ) -> ValidationOutcome:
        """Run all three phases, stopping at the first phase that fails."""
        local = self.validate_local(values, visibility)
        if not local.valid:
            return local
        return _outcome(await self.check_async(values, visibility))


# =============================================================================
# Compiler
# =============================================================================


def compile_ruleset(
    schema: FormSchemaSpec,
    sync_registry: Mapping[str, SyncValidator] | None = None,
    async_registry: Mapping[str, AsyncValidator] | None = None,
    *,
    field_types: Mapping[str, FieldTypeRule] | None = None,
    config: FormsConfig | None = None,
) -> Ruleset:
    """
    Compile a schema into a Ruleset.

    Args:
        schema: The form schema
        sync_registry: Named cross-field validators
        async_registry: Named async field validators
        field_types: Extra or overriding field type rules keyed by type tag
        config: Forms configuration (messages)

    Returns:
        Immutable Ruleset. Compilation never raises for unknown field types
        or unknown validator names.
    """
    config = config or FormsConfig()
    sync_registry = sync_registry or {}
    async_registry = async_registry or {}

    # Last declaration wins when a name repeats
    by_name: dict[str, FieldSpec] = {}
    for field in schema.all_fields():
        by_name[field.name] = field

    compiled_fields: list[CompiledField] = []
    cross_field_checks: list[CrossFieldCheck] = []
    async_checks: list[AsyncCheck] = []

    for field in by_name.values():
        rules = field.validation
        rule = resolve_field_type(field.type, field_types)

        compiled_fields.append(
            CompiledField(
                spec=field,
                rule=rule,
                pattern=_compile_pattern(field),
                required_message=(
                    rules.error_message or rule.required_message or config.required_message
                ),
            )
        )

        default_message = rules.error_message or f"Validation failed for {field.name}"

        if rules.custom_validator is not None:
            name = rules.custom_validator.validator
            sync_function = sync_registry.get(name)
            if sync_function is None:
                log_with_context(
                    logger,
                    logging.WARNING,
                    f"Validator {name!r} not found for field {field.name!r}; check skipped",
                    field=field.name,
                    validator=name,
                )
            else:
                cross_field_checks.append(
                    CrossFieldCheck(
                        owner=field.name,
                        fields=tuple(rules.custom_validator.fields),
                        validator_name=name,
                        message=default_message,
                        function=sync_function,
                    )
                )

        if rules.async_validator is not None:
            name = rules.async_validator.name
            async_function = async_registry.get(name)
            if async_function is None:
                log_with_context(
                    logger,
                    logging.WARNING,
                    f"Async validator {name!r} not found for field {field.name!r}; check skipped",
                    field=field.name,
                    validator=name,
                )
            else:
                async_checks.append(
                    AsyncCheck(
                        field_name=field.name,
                        validator_name=name,
                        params=tuple(rules.async_validator.params),
                        message=default_message,
                        function=async_function,
                    )
                )

    _warn_unknown_references(by_name, cross_field_checks, async_checks)

    logger.debug(
        "Compiled ruleset for %r: %d fields, %d cross-field, %d async",
        schema.form_title,
        len(compiled_fields),
        len(cross_field_checks),
        len(async_checks),
    )

    return Ruleset(
        fields=tuple(compiled_fields),
        cross_field_checks=tuple(cross_field_checks),
        async_checks=tuple(async_checks),
        async_error_message=config.async_error_message,
    )


def _warn_unknown_references(
    by_name: Mapping[str, FieldSpec],
    cross_field_checks: list[CrossFieldCheck],
    async_checks: list[AsyncCheck],
) -> None:
    # Unknown names read as None at validation time
    for cross in cross_field_checks:
        for name in cross.fields:
            if name not in by_name:
                logger.warning(
                    "Validator %r on field %r names unknown field %r",
                    cross.validator_name,
                    cross.owner,
                    name,
                )
    for check in async_checks:
        for name in check.params:
            if name not in by_name:
                logger.warning(
                    "Async validator %r on field %r names unknown companion field %r",
                    check.validator_name,
                    check.field_name,
                    name,
                )


def _compile_pattern(field: FieldSpec) -> re.Pattern[str] | None:
    pattern = field.validation.pattern
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        logger.warning("Invalid pattern %r on field %r ignored: %s", pattern, field.name, e)
        return None
