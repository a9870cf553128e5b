"""Shared helpers for the HTTP-backed provider modules.

Consolidates the shared httpx client configuration, safe numeric parsing of
provider payloads, and the ``attempt`` wrapper that turns a provider failure
into "no value, try the next provider".
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Coroutine
from typing import Any, Final, TypeVar

import httpx

from Price_Pulse.utils.exceptions import (
    DataFetchError,
    DataSourceUnavailableError,
    MalformedPayloadError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Shared constants
# ---------------------------------------------------------------------------

HTTP_OK: Final[int] = 200
USER_AGENT: Final[str] = "price-pulse/0.1"


def build_http_client() -> httpx.AsyncClient:
    """Create the shared client used by every REST provider."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(connect=5.0, read=15.0, write=10.0, pool=5.0),
        limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        headers={"User-Agent": USER_AGENT},
    )


# ---------------------------------------------------------------------------
# Safe conversions
# ---------------------------------------------------------------------------


def safe_price(value: object) -> float | None:
    """Parse a provider value as a finite positive number.

    Accepts numbers and numeric strings. Returns None for anything else,
    including zero, negatives, NaN, and infinity.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value))
    except (ValueError, TypeError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def dig(payload: object, *path: str | int) -> object:
    """Walk nested dicts/lists along *path*, returning None on any miss."""
    current = payload
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return None
            current = current[key]
        else:
            if not isinstance(current, dict) or key not in current:
                return None
            current = current[key]
    return current


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    asset: str,
    source: str,
    **kwargs: Any,
) -> object:
    """Perform a request and decode its JSON body.

    Raises:
        DataSourceUnavailableError: On transport errors or a non-200 status.
        MalformedPayloadError: If the body is not valid JSON.
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        msg = f"{source} request failed: {exc}"
        raise DataSourceUnavailableError(msg, asset=asset, source=source) from exc

    if response.status_code != HTTP_OK:
        msg = f"{source} returned HTTP {response.status_code}."
        raise DataSourceUnavailableError(
            msg,
            asset=asset,
            source=source,
            http_status=response.status_code,
        )

    try:
        return response.json()
    except ValueError as exc:
        msg = f"{source} returned a body that is not JSON."
        raise MalformedPayloadError(msg, asset=asset, source=source) from exc


# ---------------------------------------------------------------------------
# Provider attempt wrapper
# ---------------------------------------------------------------------------


async def attempt(
    fetch_fn: Callable[[], Coroutine[Any, Any, T]],
    *,
    label: str,
) -> T | None:
    """Run one provider fetch, converting any provider failure into None.

    Catches the domain ``DataFetchError`` family plus raw httpx and timeout
    errors; anything else is a bug and propagates.

    Args:
        fetch_fn: Zero-argument callable returning the fetch coroutine.
        label: Human-readable provider label for log messages.

    Returns:
        Whatever *fetch_fn* returns, or None if the provider failed.
    """
    try:
        return await fetch_fn()
    except (DataFetchError, httpx.HTTPError, TimeoutError) as exc:
        logger.warning("%s failed: %s", label, exc)
        return None
