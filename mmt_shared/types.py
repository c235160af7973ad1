"""
Shared types, enums, and constants.
"""
import os
from enum import Enum
from typing import Final, Literal

# File type classifications
MediaKind = Literal["image", "video", "audio", "document", "unknown"]

# Error codes
class ErrorCode(str, Enum):
    """Standardized error codes (string enum)."""

    # Client / validation
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_JSON = "INVALID_JSON"
    NOT_FOUND = "NOT_FOUND"

    # Feature / service availability
    DEGRADED = "DEGRADED"
    TOOL_MISSING = "TOOL_MISSING"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Tool / parsing
    ADAPTER_FAILED = "ADAPTER_FAILED"
    PARSE_ERROR = "PARSE_ERROR"
    TIMEOUT = "TIMEOUT"

    # Sidecar store
    SIDECAR_CORRUPT = "SIDECAR_CORRUPT"
    SIDECAR_IO_ERROR = "SIDECAR_IO_ERROR"

    # Operation errors
    UPDATE_FAILED = "UPDATE_FAILED"
    READ_FAILED = "READ_FAILED"

# File extensions by kind (the file dialog groups use the same sets)
EXTENSIONS: Final[dict[MediaKind, tuple[str, ...]]] = {
    "image": (".jpg", ".jpeg", ".png", ".gif", ".tiff", ".tif", ".webp", ".bmp", ".heic"),
    "video": (".mp4", ".mov", ".m4v", ".mkv", ".avi", ".webm"),
    "audio": (".mp3", ".wav", ".flac", ".m4a", ".ogg"),
    "document": (".pdf", ".docx", ".xlsx", ".pptx", ".txt"),
    "unknown": (),
}

_DIALOG_GROUP_NAMES: Final[dict[MediaKind, str]] = {
    "image": "Images",
    "video": "Video",
    "audio": "Audio",
    "document": "Docs",
}


def file_extension(filename: str) -> str:
    """Lowercase extension with its leading dot ("" when the name has none)."""
    try:
        return os.path.splitext(str(filename or ""))[1].lower()
    except Exception:
        return ""


def classify_file(filename: str) -> MediaKind:
    """
    Classify file by extension.

    Args:
        filename: File name or path

    Returns:
        Media kind (image, video, audio, document, unknown)
    """
    ext = file_extension(filename)

    for kind, exts in EXTENSIONS.items():
        if ext in exts:
            return kind

    return "unknown"


def supported_extensions() -> list[str]:
    out: list[str] = []
    for exts in EXTENSIONS.values():
        out.extend(exts)
    return out


def file_dialog_filters() -> list[dict[str, object]]:
    """Extension groups for an open-file dialog (extensions without the dot)."""
    filters: list[dict[str, object]] = [
        {"name": "All Supported", "extensions": [e.lstrip(".") for e in supported_extensions()]},
    ]
    for kind, name in _DIALOG_GROUP_NAMES.items():
        filters.append({"name": name, "extensions": [e.lstrip(".") for e in EXTENSIONS[kind]]})
    filters.append({"name": "All Files", "extensions": ["*"]})
    return filters
