"""
Configuration for Media Meta Tagger.

Values come from the environment once, at import time. `AppConfig` bundles
them so `deps.build_services` can hand one explicit object to the adapters
and the resolver (tests build their own `AppConfig`).
"""
import logging
import os
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path

from mmt_shared.time import today_stamp

from .utils import env_bool

logger = logging.getLogger(__name__)


def _env_raw(*names: str, default: str | None = None) -> str | None:
    for name in names:
        if not name:
            continue
        try:
            val = os.getenv(name)
        except Exception:
            val = None
        if val is not None and str(val).strip() != "":
            return str(val).strip()
    return default


def _env_int(default: int, *names: str, min_value: int | None = None, max_value: int | None = None) -> int:
    raw = _env_raw(*names)
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid integer for %s=%r, using default=%s", names[0] if names else "<unknown>", raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning("Value too small for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, min_value)
        value = min_value
    if max_value is not None and value > max_value:
        logger.warning("Value too large for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, max_value)
        value = max_value
    return value


def _env_float(default: float, *names: str, min_value: float | None = None, max_value: float | None = None) -> float:
    raw = _env_raw(*names)
    if raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid float for %s=%r, using default=%s", names[0] if names else "<unknown>", raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning("Value too small for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, min_value)
        value = min_value
    if max_value is not None and value > max_value:
        logger.warning("Value too large for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, max_value)
        value = max_value
    return value


def _env_bool(default: bool, *names: str) -> bool:
    for name in names:
        if not name:
            continue
        try:
            if name in os.environ:
                return env_bool(name, default)
        except Exception:
            continue
    return default


# Platform detection
IS_WINDOWS = sys.platform == "win32"

PACKAGE_ROOT = Path(__file__).resolve().parent
REPO_ROOT = PACKAGE_ROOT.parent

# External tool overrides (explicit path wins over the location probe)
PROPTOOL_BIN = _env_raw("MMT_PROPTOOL_BIN", "MMT_PROPTOOL_PATH")
EXIFTOOL_BIN = _env_raw("MMT_EXIFTOOL_BIN", "MMT_EXIFTOOL_PATH")

# Executable names probed in each candidate directory
PROPTOOL_NAMES = ("DBM.PropTool.exe",) if IS_WINDOWS else ("DBM.PropTool", "DBM.PropTool.exe")
EXIFTOOL_NAMES = ("exiftool.exe", "exiftool") if IS_WINDOWS else ("exiftool",)

# Packaged-app resource directory (e.g. the desktop shell's `resources/`)
RESOURCES_DIR = _env_raw("MMT_RESOURCES_DIR")

PROPTOOL_TIMEOUT = _env_float(15.0, "MMT_PROPTOOL_TIMEOUT", min_value=1.0, max_value=300.0)
EXIFTOOL_TIMEOUT = _env_float(15.0, "MMT_EXIFTOOL_TIMEOUT", min_value=1.0, max_value=300.0)
EXIFTOOL_MIN_VERSION = str(_env_raw("MMT_EXIFTOOL_MIN_VERSION", default="") or "").strip()
TOOL_PROBE_TIMEOUT = _env_float(5.0, "MMT_TOOL_PROBE_TIMEOUT", min_value=0.5, max_value=60.0)

# Sidecar store
SIDECAR_SUFFIX = str(_env_raw("MMT_SIDECAR_SUFFIX", default=".dbmmeta.json") or ".dbmmeta.json")

# Logging
LOG_DIR = _env_raw("MMT_LOG_DIR", default=str(Path.home() / "Documents" / "DBM" / "logs"))
LOG_TO_FILE = _env_bool(True, "MMT_LOG_TO_FILE")
DEBUG = _env_bool(False, "MMT_DEBUG")

# HTTP surface
HOST = str(_env_raw("MMT_HOST", default="127.0.0.1"))
PORT = _env_int(8765, "MMT_PORT", min_value=1, max_value=65535)


def daily_log_file(log_dir: str | Path | None = None) -> Path:
    """Path of today's log file (`app-YYYY-MM-DD.log`)."""
    base = Path(log_dir or LOG_DIR or ".").expanduser()
    return base / f"app-{today_stamp()}.log"


@dataclass(frozen=True)
class AppConfig:
    """Process-wide settings resolved once at startup."""

    proptool_bin: str | None = None
    exiftool_bin: str | None = None
    proptool_names: tuple[str, ...] = PROPTOOL_NAMES
    exiftool_names: tuple[str, ...] = EXIFTOOL_NAMES
    resources_dir: str | None = None
    extra_tool_dirs: tuple[str, ...] = field(default_factory=tuple)
    search_system_path: bool = True
    proptool_timeout: float = 15.0
    exiftool_timeout: float = 15.0
    exiftool_min_version: str = ""
    tool_probe_timeout: float = 5.0
    sidecar_suffix: str = ".dbmmeta.json"
    log_file: str | None = None

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            proptool_bin=PROPTOOL_BIN,
            exiftool_bin=EXIFTOOL_BIN,
            resources_dir=RESOURCES_DIR,
            proptool_timeout=PROPTOOL_TIMEOUT,
            exiftool_timeout=EXIFTOOL_TIMEOUT,
            exiftool_min_version=EXIFTOOL_MIN_VERSION,
            tool_probe_timeout=TOOL_PROBE_TIMEOUT,
            sidecar_suffix=SIDECAR_SUFFIX,
            log_file=str(daily_log_file()) if LOG_TO_FILE else None,
        )

    def with_overrides(self, **changes) -> "AppConfig":
        return replace(self, **changes)


def get_tool_paths() -> dict[str, str | None]:
    """Return the configured (not yet probed) external tool overrides."""
    return {
        "proptool": PROPTOOL_BIN,
        "exiftool": EXIFTOOL_BIN,
    }
