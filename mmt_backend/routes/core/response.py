"""
Response utilities for route handlers.
"""
import math
from typing import Any

from aiohttp import web

from mmt_shared import Result, sanitize_error_message


def safe_error_message(exc: Exception, generic_message: str) -> str:
    """Client-facing message for an unexpected exception (paths masked)."""
    return sanitize_error_message(exc, generic_message)


def _json_response(result: Result, status: int | None = None):
    """
    Convert Result to JSON response.

    Args:
        result: Result object
        status: HTTP status code (optional, 200 if None)

    Returns:
        aiohttp web.Response
    """
    # Business / validation errors return HTTP 200 with {ok:false,...}.
    if status is None:
        status = 200

    data = result.data
    if hasattr(data, "to_dict"):
        data = data.to_dict()

    payload = _sanitize_json_payload(
        {
            "ok": result.ok,
            "data": data,
            "error": result.error,
            "code": result.code,
            "meta": result.meta,
        }
    )
    return web.json_response(payload, status=status)


def _sanitize_json_payload(value: Any):
    """
    Normalize payload values so they are always valid strict JSON.
    - Converts NaN/Infinity floats to None.
    - Recurses through dict/list/tuple containers.
    """
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {k: _sanitize_json_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize_json_payload(v) for v in value]
    return value
