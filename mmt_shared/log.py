"""
Logging utilities with consistent formatting and emoji indicators.
"""
import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Final

# Emoji indicators for log levels
EMOJI_MAP: Final[dict[str, str]] = {
    "DEBUG": "🔍",      # Magnifying glass for debug
    "INFO": "ℹ️",       # Info symbol
    "WARNING": "⚠️",    # Warning sign
    "ERROR": "❌",      # Error cross
    "CRITICAL": "🔥",   # Fire for critical
    "SUCCESS": "✅",    # Success checkmark
}

# Global logger prefix
PREFIX: Final[str] = "🏷️ MMT"
ROOT_LOGGER_NAME: Final[str] = "mmt"
FILE_LOG_FORMAT: Final[str] = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class CorrelationFilter(logging.Filter):
    """Inject `request_id` from `request_id_var` into each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Attach `record.request_id` for correlation; always returns True."""
        try:
            record.request_id = request_id_var.get("")
        except Exception:
            record.request_id = ""
        return True


class EmojiFormatter(logging.Formatter):
    """Custom formatter that adds emoji based on log level."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a single line with a prefix and emoji."""
        emoji = EMOJI_MAP.get(record.levelname, "🏷️")

        # Format: 🏷️ MMT [✅] module [rid]: message
        try:
            rid = str(getattr(record, "request_id", "") or "").strip()
        except Exception:
            rid = ""
        rid_part = f" [{rid}]" if rid else ""
        log_format = f"{PREFIX} [{emoji}] %(name)s{rid_part}: %(message)s"
        formatter = logging.Formatter(log_format)
        return formatter.format(record)


def _has_correlation_filter(logger: logging.Logger) -> bool:
    try:
        return any(isinstance(f, CorrelationFilter) for f in list(logger.filters or []))
    except Exception:
        return False


def _ensure_correlation_filter(logger: logging.Logger) -> None:
    if _has_correlation_filter(logger):
        return
    try:
        logger.addFilter(CorrelationFilter())
    except Exception:
        pass

def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Get a logger with the MMT prefix and emoji indicators.

    All loggers live under the `mmt` namespace so a single file handler on the
    namespace root captures every module.

    Args:
        name: Logger name (usually __name__)
        level: Optional logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance with emoji formatting
    """
    # Clean name (drop the package prefix if present)
    if name.startswith("__main__"):
        name = "main"
    elif "." in name:
        parts = name.split(".")
        if parts[0] in ("mmt_backend", "mmt_shared"):
            name = ".".join(parts[1:]) or parts[0]

    root = _get_root_logger()
    logger = root.getChild(name)
    _ensure_correlation_filter(logger)

    if level is not None:
        logger.setLevel(level)

    return logger


def _get_root_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    _ensure_correlation_filter(root)
    if not root.handlers:
        # Default to INFO if not configured
        root.setLevel(logging.INFO)
        handler = logging.StreamHandler()
        handler.setFormatter(EmojiFormatter())
        handler.addFilter(CorrelationFilter())
        root.addHandler(handler)

        # Prevent propagation to avoid duplicate logs
        root.propagate = False
    return root


def attach_file_handler(log_file: str | Path, level: int = logging.DEBUG) -> logging.Handler | None:
    """
    Mirror every `mmt.*` log line into `log_file` (created with its directory).

    Idempotent per path. Returns the handler, or None when the file cannot be
    opened (logging to disk is best-effort).
    """
    root = _get_root_logger()
    target = Path(log_file).expanduser()
    for existing in list(root.handlers):
        if isinstance(existing, logging.FileHandler):
            try:
                if Path(existing.baseFilename) == target.resolve():
                    return existing
            except OSError:
                continue
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(str(target), encoding="utf-8")
    except OSError as exc:
        root.warning("Cannot open log file %s: %s", target, exc)
        return None
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    root.addHandler(handler)
    if root.level > level:
        root.setLevel(level)
        for other in root.handlers:
            if not isinstance(other, logging.FileHandler) and other.level == logging.NOTSET:
                other.setLevel(logging.INFO)
    return handler

# Add SUCCESS level
SUCCESS_LEVEL: Final[int] = 25  # Between INFO (20) and WARNING (30)
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")

def log_success(logger: logging.Logger, message: str) -> None:
    """
    Log a success message with ✅ emoji.

    Args:
        logger: Logger instance
        message: Success message
    """
    logger.log(SUCCESS_LEVEL, message)

def log_structured(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """Emit a structured JSON log entry with contextual fields."""
    payload = {
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "context": context,
    }
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
