"""
Configuration models for dazzle forms.

Configuration is loaded from the dazzle.toml [forms] section.
"""

from __future__ import annotations

import logging
import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_DEV_SIGNING_KEY = "dazzle-dev-secret-key"


class DuplicateFieldPolicy(str, Enum):
    """What to do when a schema repeats a field name."""

    REJECT = "reject"
    LAST_WINS = "last_wins"


class FormsConfig(BaseModel):
    """Runtime configuration for schema loading and validation."""

    duplicate_fields: DuplicateFieldPolicy = DuplicateFieldPolicy.REJECT
    required_message: str = "This field is required"
    async_error_message: str = "Unable to validate this field right now"
    log_level: str = "INFO"
    log_file: Path | None = None
    state_secret_env: str = Field(
        default="DAZZLE_SECRET_KEY",
        description="Environment variable holding the step-state signing key",
    )

    def signing_key(self) -> bytes:
        """HMAC key for step-state tokens, with a development fallback."""
        key = os.environ.get(self.state_secret_env, _DEV_SIGNING_KEY)
        return key.encode("utf-8")


def load_forms_config(toml_path: Path) -> FormsConfig:
    """
    Load forms configuration from dazzle.toml.

    Args:
        toml_path: Path to dazzle.toml

    Returns:
        FormsConfig (defaults when the file or [forms] section is absent)
    """
    if not toml_path.exists():
        return FormsConfig()

    with open(toml_path, "rb") as f:
        data: dict[str, Any] = tomllib.load(f)

    section = data.get("forms", {})
    if not section:
        logger.debug("No [forms] section in %s, using defaults", toml_path)
        return FormsConfig()

    return FormsConfig.model_validate(section)
