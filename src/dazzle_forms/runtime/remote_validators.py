"""
HTTP-backed async validators.

Wraps a remote validation endpoint as an async validator suitable for an
async registry. The endpoint receives::

    {"value": <field value>, "params": [<companion values>...]}

and answers ``{"valid": true|false}``. Transport and HTTP errors propagate
to the ruleset, which reports them on the field with a generic message.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from dazzle_forms.runtime.validator_registry import AsyncValidator

logger = logging.getLogger(__name__)


def http_async_validator(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    headers: dict[str, str] | None = None,
) -> AsyncValidator:
    """
    Build an async validator that asks a remote endpoint.

    Args:
        url: Endpoint to POST to
        client: Shared client (connection pooling, auth, timeouts); a
            short-lived client is created per call when omitted
        headers: Extra request headers

    Returns:
        ``async (value, *params) -> bool``
    """

    async def validate_remotely(value: Any, *params: Any) -> bool:
        body = {"value": value, "params": list(params)}
        if client is not None:
            response = await client.post(url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient() as short_lived:
                response = await short_lived.post(url, json=body, headers=headers)

        response.raise_for_status()
        result = response.json()
        valid = bool(result.get("valid", False)) if isinstance(result, dict) else False
        logger.debug("Remote validator %s answered valid=%s", url, valid)
        return valid

    validate_remotely.__qualname__ = f"http_async_validator({url!r})"
    return validate_remotely
