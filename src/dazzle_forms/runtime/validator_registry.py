"""Named validator registries for form schemas.

Schemas reference validators by name. Hosts supply the implementations
through registries passed to the ruleset compiler, so independent forms
can run with different validator sets::

    sync_validators = ValidatorRegistry(kind="sync")

    @sync_validators.validator("passwordsMatch")
    def passwords_match(values, fields):
        return values[fields[0]] == values[fields[1]]

Contracts:

- sync (cross-field): ``(values, field_names) -> bool`` where ``values`` is
  the snapshot restricted to ``field_names``
- async (per-field): ``async (value, *companion_values) -> bool``
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

logger = logging.getLogger(__name__)

SyncValidator = Callable[[Mapping[str, Any], Sequence[str]], bool]
AsyncValidator = Callable[..., Awaitable[bool]]


@dataclass
class ValidatorRegistry(Mapping[str, Callable[..., Any]]):
    """Registry of validators keyed by the name schemas use."""

    kind: str = "sync"
    _validators: dict[str, Callable[..., Any]] = field(default_factory=dict)

    def register(self, name: str, function: Callable[..., Any]) -> None:
        """Register a validator, replacing any previous one with the same name."""
        if name in self._validators:
            logger.debug("Replacing %s validator %s", self.kind, name)
        self._validators[name] = function

    def validator(self, name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of :meth:`register`."""

        def decorator(function: Callable[..., Any]) -> Callable[..., Any]:
            self.register(name, function)
            return function

        return decorator

    def __getitem__(self, name: str) -> Callable[..., Any]:
        return self._validators[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._validators)

    def __len__(self) -> int:
        return len(self._validators)

    def copy(self) -> ValidatorRegistry:
        return ValidatorRegistry(kind=self.kind, _validators=dict(self._validators))


# =============================================================================
# Built-in Cross-field Validators
# =============================================================================


def passwords_match(values: Mapping[str, Any], fields: Sequence[str]) -> bool:
    """Two named fields hold the same value."""
    if len(fields) != 2:
        return False
    return bool(values.get(fields[0]) == values.get(fields[1]))


def date_range_valid(values: Mapping[str, Any], fields: Sequence[str]) -> bool:
    """The first named date is not after the second."""
    if len(fields) != 2:
        return False
    try:
        start = date.fromisoformat(str(values.get(fields[0])))
        end = date.fromisoformat(str(values.get(fields[1])))
    except ValueError:
        return False
    return start <= end


# =============================================================================
# Built-in Async Validators
# =============================================================================

_TAKEN_USERNAMES = ("admin", "root", "superuser", "system")
_VALID_EMAIL_SUFFIXES = (".com", ".org", ".net", ".edu", ".gov")
_POSTAL_CODE_PATTERNS = {
    "us": re.compile(r"^\d{5}(-\d{4})?$"),
    "ca": re.compile(r"^[A-Za-z]\d[A-Za-z] \d[A-Za-z]\d$"),
    "uk": re.compile(r"^[A-Za-z]{1,2}\d[A-Za-z\d]? \d[A-Za-z]{2}$"),
}


async def is_username_available(username: str, *params: Any) -> bool:
    lowered = str(username).lower()
    return not any(taken in lowered for taken in _TAKEN_USERNAMES)


async def is_email_domain_valid(email: str, *params: Any) -> bool:
    if not email or "@" not in str(email):
        return False
    domain = str(email).split("@")[1]
    return domain.endswith(_VALID_EMAIL_SUFFIXES)


async def is_postal_code_valid(postal_code: str, country: Any = None, *params: Any) -> bool:
    """Postal code format check for the companion country field."""
    if not postal_code:
        return False
    pattern = _POSTAL_CODE_PATTERNS.get(str(country or "").lower())
    if pattern is None:
        return len(str(postal_code).strip()) > 0
    return pattern.match(str(postal_code)) is not None


def default_registries() -> tuple[ValidatorRegistry, ValidatorRegistry]:
    """Fresh (sync, async) registries holding the built-in validators."""
    sync_registry = ValidatorRegistry(kind="sync")
    sync_registry.register("passwordsMatch", passwords_match)
    sync_registry.register("dateRangeValid", date_range_valid)

    async_registry = ValidatorRegistry(kind="async")
    async_registry.register("isUsernameAvailable", is_username_available)
    async_registry.register("isEmailDomainValid", is_email_domain_valid)
    async_registry.register("isPostalCodeValid", is_postal_code_valid)
    return sync_registry, async_registry
