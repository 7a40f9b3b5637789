"""
Shared utility functions for the fetch-stream engine.

This module resolves per-invocation request inputs and dispatches user
handlers that may be either plain functions or coroutine functions.
"""

import json
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse

from fetch_stream._types import HeadersLike, ParamsLike, UrlLike


async def _resolve_value(value: Any) -> Any:
    if callable(value):
        result = value()
        # Check if result is awaitable
        if hasattr(result, "__await__"):
            return await result
        return result
    return value


def resolve_url(url: UrlLike) -> str:
    """
    Resolve a URL that may be a static string or a zero-argument callable.

    Args:
        url: URL string or callable returning one

    Returns:
        The URL for this invocation
    """
    if callable(url):
        return url()
    return url


async def resolve_headers_async(headers: HeadersLike | None) -> dict[str, str]:
    """
    Resolve headers from HeadersLike to a plain dict.

    Supports static string values, sync callables, or async callables.

    Args:
        headers: Headers dict with static or callable values

    Returns:
        Resolved headers dict with all string values
    """
    if headers is None:
        return {}

    resolved: dict[str, str] = {}
    for key, value in headers.items():
        resolved[key] = await _resolve_value(value)
    return resolved


async def resolve_params_async(params: ParamsLike | None) -> dict[str, str]:
    """
    Resolve params from ParamsLike to a plain dict.

    None values, and callables returning None, are omitted from the result.

    Args:
        params: Params dict with static or callable values

    Returns:
        Resolved params dict with all string values
    """
    if params is None:
        return {}

    resolved: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        result = await _resolve_value(value)
        if result is None:
            continue
        resolved[key] = result
    return resolved


def build_url_with_params(base_url: str, params: dict[str, str]) -> str:
    """
    Build a URL with query parameters merged into any existing query.

    Args:
        base_url: The base URL
        params: Query parameters to add (override existing keys)

    Returns:
        URL with query parameters
    """
    if not params:
        return base_url

    parsed = urlparse(base_url)
    existing_params = parse_qs(parsed.query, keep_blank_values=True)
    merged: dict[str, str] = {}
    for key, values in existing_params.items():
        if values:
            merged[key] = values[0]
    merged.update(params)

    return parsed._replace(query=urlencode(merged)).geturl()


def encode_body(body: str | bytes | Any) -> bytes:
    """
    Encode a request body value to bytes.

    - Bytes are returned as-is
    - Strings are encoded as UTF-8
    - Other values are JSON-serialized

    Args:
        body: The body value to encode

    Returns:
        Encoded bytes
    """
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body).encode("utf-8")


async def call_handler(handler: Any, *args: Any) -> None:
    """
    Invoke an optional handler, awaiting its result when it is awaitable.

    Args:
        handler: Callable or None
        *args: Positional arguments for the handler
    """
    if handler is None:
        return
    result = handler(*args)
    if hasattr(result, "__await__"):
        await result
