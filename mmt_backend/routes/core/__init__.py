"""
Core utilities for route handlers.
"""
from .request_json import _read_json
from .response import _json_response, safe_error_message
from .services import _require_services, get_services_error, prewarm_services, set_services

__all__ = [
    "_read_json",
    "_json_response",
    "safe_error_message",
    "_require_services",
    "get_services_error",
    "prewarm_services",
    "set_services",
]
