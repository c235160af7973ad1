"""
Capability classification by file extension.

The class decides which stores take part in a write and which store wins on
read. It depends on the extension only: no file access, no persisted state.
"""
from __future__ import annotations

import os
from enum import Enum
from typing import Any, Final

from mmt_shared.types import EXTENSIONS


class CapabilityClass(str, Enum):
    """Metadata capability of a file format."""

    SIDECAR_ONLY = "sidecar_only"            # no shell or embedded support assumed
    EMBED_REQUIRED = "embed_required"        # shell surface unreliable; embed + sidecar safety net
    TAGS_SIDECAR_ONLY = "tags_sidecar_only"  # shell keeps title/comments/rating but drops tags
    SHELL_PRIMARY = "shell_primary"          # shell first, sidecar/embedded as fallback


DEFAULT_CLASS: Final[CapabilityClass] = CapabilityClass.SHELL_PRIMARY

_CLASS_BY_EXTENSION: Final[dict[str, CapabilityClass]] = {
    "txt": CapabilityClass.SIDECAR_ONLY,
    "heic": CapabilityClass.EMBED_REQUIRED,
    "wav": CapabilityClass.EMBED_REQUIRED,
    "pdf": CapabilityClass.EMBED_REQUIRED,
    "mp3": CapabilityClass.TAGS_SIDECAR_ONLY,
}


def extension_of(path: Any) -> str:
    """Lowercase text after the final `.` of the file name, "" when there is none."""
    try:
        text = os.fspath(path) if isinstance(path, os.PathLike) else str(path or "")
    except Exception:
        return ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    name = text.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].strip().lower()


def classify(path: Any) -> CapabilityClass:
    """Map a path (or bare file name) to its capability class. Never raises."""
    return _CLASS_BY_EXTENSION.get(extension_of(path), DEFAULT_CLASS)


def capability_table() -> dict[str, str]:
    """Capability class for every supported extension (dot included)."""
    table: dict[str, str] = {}
    for exts in EXTENSIONS.values():
        for ext in exts:
            table[ext] = classify(f"x{ext}").value
    return table
