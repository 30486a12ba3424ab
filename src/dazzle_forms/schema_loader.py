"""
Loading and checking form schema documents.

Schemas are JSON documents. Loading validates the document against the
FormSchemaSpec model, then applies the checks the model cannot express:
duplicate field names across sections and self-referencing conditions.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from dazzle_forms.config import DuplicateFieldPolicy, FormsConfig
from dazzle_forms.errors import ConditionCycleError, DuplicateFieldError, SchemaLoadError
from dazzle_forms.specs.schema import FormSchemaSpec

logger = logging.getLogger(__name__)


def parse_schema(data: Any, config: FormsConfig | None = None) -> FormSchemaSpec:
    """
    Build a FormSchemaSpec from a decoded schema document.

    Args:
        data: Decoded JSON document
        config: Forms configuration (duplicate-field policy)

    Returns:
        Validated schema

    Raises:
        SchemaLoadError: If the document does not describe a valid schema
        DuplicateFieldError: If field names repeat and the policy is "reject"
        ConditionCycleError: If a field's condition references the field itself
    """
    config = config or FormsConfig()

    if not isinstance(data, dict):
        raise SchemaLoadError("Schema document must be a JSON object")

    try:
        schema = FormSchemaSpec.model_validate(data)
    except ValidationError as e:
        raise SchemaLoadError(f"Invalid schema: {e}") from e

    check_schema(schema, config)
    return schema


def check_schema(schema: FormSchemaSpec, config: FormsConfig | None = None) -> None:
    """Apply duplicate-name and condition-cycle checks to a schema."""
    config = config or FormsConfig()

    counts = Counter(schema.field_names)
    duplicates = sorted(name for name, count in counts.items() if count > 1)
    if duplicates:
        if config.duplicate_fields == DuplicateFieldPolicy.REJECT:
            raise DuplicateFieldError(duplicates)
        logger.warning("Duplicate field names %s; last declaration wins", duplicates)

    for field in schema.all_fields():
        if field.conditional is not None and field.name in field.conditional.referenced_fields():
            raise ConditionCycleError(field.name)


def load_schema(file_path: str | Path, config: FormsConfig | None = None) -> FormSchemaSpec:
    """
    Load and validate a form schema JSON file.

    Raises:
        SchemaLoadError: If the file cannot be read or is not a valid schema
    """
    try:
        with open(file_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise SchemaLoadError(f"Schema file not found: {file_path}") from e
    except json.JSONDecodeError as e:
        raise SchemaLoadError(f"Invalid JSON in schema file: {e}") from e

    return parse_schema(data, config)


def schema_id_from_name(name: str) -> str:
    """URL-friendly schema id: lowercase, dashes for spaces, [a-z0-9-] only."""
    slug = re.sub(r"\s+", "-", name.strip().lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


def list_schemas(directory: str | Path) -> list[tuple[str, str]]:
    """
    List schema documents in a directory.

    Returns:
        (schema id, title) pairs sorted by id. Unreadable files are skipped.
    """
    root = Path(directory)
    if not root.is_dir():
        return []

    schemas: list[tuple[str, str]] = []
    for path in sorted(root.glob("*.json")):
        schema_id = path.stem
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Skipping unreadable schema %s: %s", path, e)
            continue
        title = data.get("formTitle") if isinstance(data, dict) else None
        schemas.append((schema_id, title or f"Form {schema_id}"))
    return schemas
