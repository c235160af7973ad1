"""Shared utilities for Media Meta Tagger."""
from .errors import sanitize_error_message
from .log import attach_file_handler, get_logger, log_structured, log_success, request_id_var
from .result import Result
from .time import now, timer, utc_iso
from .types import (
    EXTENSIONS,
    ErrorCode,
    MediaKind,
    classify_file,
    file_dialog_filters,
    file_extension,
    supported_extensions,
)

__all__ = [
    "Result",
    "get_logger",
    "log_success",
    "log_structured",
    "attach_file_handler",
    "request_id_var",
    "now",
    "utc_iso",
    "timer",
    "MediaKind",
    "ErrorCode",
    "EXTENSIONS",
    "classify_file",
    "file_extension",
    "supported_extensions",
    "file_dialog_filters",
    "sanitize_error_message",
]
