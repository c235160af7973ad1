"""
Client-facing error text.

Adapter and resolver errors carry absolute media paths and raw tool output
(ExifTool prefixes its lines with "Error:" or "Warning:"). Clients get the
media file name without its directory, and one line of text.
"""
from __future__ import annotations

import re
from typing import Any

MAX_ERROR_LENGTH = 200
PATH_MASK = "[path]"

_PATH_RE = re.compile(
    r"(?:[A-Za-z]:\\|\\\\|(?<![A-Za-z0-9:/?&=#%.])/(?!/))[^\s\"']+"
)
_TOOL_PREFIX_RE = re.compile(r"^(?:error|warning)\s*:\s*", re.IGNORECASE)
_TRAILING_PUNCT = ".,;:)]"


def _mask_path(match: re.Match[str]) -> str:
    text = match.group(0)
    stripped = text.rstrip(_TRAILING_PUNCT)
    tail = text[len(stripped):]
    name = re.split(r"[\\/]", stripped)[-1]
    if not name:
        return f"{PATH_MASK}{tail}"
    return f"{PATH_MASK}/{name}{tail}"


def mask_paths(text: str) -> str:
    """Replace each absolute path with `[path]/<file name>`."""
    return _PATH_RE.sub(_mask_path, text)


def _tool_lines(raw: str) -> list[str]:
    lines = []
    for line in raw.splitlines():
        line = _TOOL_PREFIX_RE.sub("", line.strip())
        if line and line not in lines:
            lines.append(line)
    return lines


def sanitize_error_message(exc: Any, fallback: str) -> str:
    """
    Build a safe error message for clients.

    Args:
        exc: Exception, tool stderr or other raw value.
        fallback: Message used alone when nothing meaningful remains, and as
            the prefix otherwise.

    Returns:
        "<fallback>: <detail>" with paths masked, or just the fallback.
    """
    fallback = fallback or "An error occurred"
    if exc is None:
        return fallback
    try:
        raw = str(exc)
    except Exception:
        return fallback

    detail = mask_paths("; ".join(_tool_lines(raw)))
    if not detail:
        return fallback
    if len(detail) > MAX_ERROR_LENGTH:
        detail = detail[: MAX_ERROR_LENGTH - 3] + "..."
    return f"{fallback}: {detail}"
