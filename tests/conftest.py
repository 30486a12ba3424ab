"""Shared pytest fixtures for dazzle forms tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from dazzle_forms.specs import FormSchemaSpec


@pytest.fixture
def shipping_schema_data() -> dict[str, Any]:
    """Flat schema with a conditional required field."""
    return {
        "formTitle": "Shipping",
        "formDescription": "Where should we send it?",
        "fields": [
            {
                "name": "shipTo",
                "label": "Ship to",
                "type": "radio",
                "options": ["domestic", "international"],
                "validation": {"required": True},
            },
            {
                "name": "country",
                "label": "Country",
                "type": "string",
                "validation": {"required": True},
                "conditional": {
                    "field": "shipTo",
                    "operator": "notEquals",
                    "value": "domestic",
                },
            },
        ],
    }


@pytest.fixture
def shipping_schema(shipping_schema_data: dict[str, Any]) -> FormSchemaSpec:
    return FormSchemaSpec.model_validate(shipping_schema_data)


@pytest.fixture
def signup_schema_data() -> dict[str, Any]:
    """Two-step schema: account details, then profile."""
    return {
        "formTitle": "Sign up",
        "formDescription": "Create an account",
        "sections": [
            {
                "title": "Account",
                "fields": [
                    {
                        "name": "username",
                        "type": "string",
                        "validation": {
                            "required": True,
                            "minLength": 3,
                            "errorMessage": "Username is not available",
                            "asyncValidator": {"name": "isUsernameAvailable"},
                        },
                    },
                    {
                        "name": "password",
                        "type": "string",
                        "validation": {"required": True, "minLength": 8},
                    },
                ],
            },
            {
                "title": "Profile",
                "fields": [
                    {
                        "name": "bio",
                        "type": "textarea",
                        "validation": {"required": True, "maxLength": 200},
                    },
                ],
            },
        ],
    }


@pytest.fixture
def signup_schema(signup_schema_data: dict[str, Any]) -> FormSchemaSpec:
    return FormSchemaSpec.model_validate(signup_schema_data)


@pytest.fixture
def write_json(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write a JSON document under tmp_path and return its path."""

    def _write(name: str, data: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write
