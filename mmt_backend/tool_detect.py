"""
Tool detection helpers for the property helper (DBM.PropTool) and ExifTool.

Location probes a fixed, ordered list of candidate directories and uses the
first executable found. Version probes are cached to avoid repeated
subprocess calls.
"""
import os
import re
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from mmt_shared import get_logger

from .config import PACKAGE_ROOT, REPO_ROOT, TOOL_PROBE_TIMEOUT

logger = get_logger(__name__)

# Cache version probes by resolved executable (None = probe failed)
_VERSION_CACHE: Dict[str, Optional[str]] = {}


def parse_tool_version(value: Optional[str]) -> Tuple[int, ...]:
    if not value:
        return ()
    parts = re.findall(r"\d+", value)
    out: list[int] = []
    for part in parts:
        try:
            out.append(int(part))
        except ValueError:
            continue
    return tuple(out)


def version_satisfies_minimum(actual: Optional[str], minimum: str) -> bool:
    if not minimum:
        return True
    minimum_parts = parse_tool_version(minimum)
    if not minimum_parts:
        return True
    actual_parts = parse_tool_version(actual or "")
    if not actual_parts:
        return False
    length = max(len(actual_parts), len(minimum_parts))
    padded_actual = list(actual_parts) + [0] * (length - len(actual_parts))
    padded_minimum = list(minimum_parts) + [0] * (length - len(minimum_parts))
    return tuple(padded_actual) >= tuple(padded_minimum)


def candidate_dirs(resources_dir: Optional[str] = None, extra_dirs: Iterable[str] = ()) -> list[Path]:
    """
    Ordered directories searched for bundled executables.

    1. packaged-app resources (`<resources>/app.asar.unpacked`, `<resources>`, `<resources>/app`,
       `<resources>/tools`)
    2. next to the running interpreter
    3. current working directory (and its `tools/`)
    4. developer checkout (`<repo>/tools`, `<repo>`, the package directory)
    5. caller-supplied extra directories
    """
    dirs: list[Path] = []
    if resources_dir:
        base = Path(resources_dir).expanduser()
        dirs.extend([base / "app.asar.unpacked", base, base / "app", base / "tools"])
    try:
        dirs.append(Path(sys.executable).resolve().parent)
    except (OSError, RuntimeError):
        pass
    cwd = Path.cwd()
    dirs.extend([cwd, cwd / "tools"])
    dirs.extend([REPO_ROOT / "tools", REPO_ROOT, PACKAGE_ROOT])
    dirs.extend(Path(d).expanduser() for d in extra_dirs if d)

    unique: list[Path] = []
    seen: set[str] = set()
    for d in dirs:
        key = os.path.normcase(str(d))
        if key in seen:
            continue
        seen.add(key)
        unique.append(d)
    return unique


def _is_safe_executable_name(raw: str) -> bool:
    if not raw:
        return False
    if "\x00" in raw or "\n" in raw or "\r" in raw:
        return False
    return not any(ch in raw for ch in ("&", "|", ";", ">", "<"))


def locate_executable(
    names: Iterable[str],
    explicit: Optional[str] = None,
    resources_dir: Optional[str] = None,
    extra_dirs: Iterable[str] = (),
    search_path: bool = True,
) -> Optional[str]:
    """
    Resolve an external tool.

    An explicit path/name is honoured first (file path or PATH lookup). Then every
    candidate directory is probed for each name in order, then PATH. Returns None
    when nothing is found; that is an "adapter unavailable" condition, not an error.
    """
    names = [n for n in names if n]
    if explicit:
        raw = explicit.strip()
        if not _is_safe_executable_name(raw):
            logger.warning("Ignoring unsafe executable override: %r", raw)
        else:
            candidate = Path(raw).expanduser()
            if candidate.is_file():
                return str(candidate.resolve())
            found = shutil.which(raw)
            if found:
                return found
            logger.warning("Configured executable not found: %s", raw)

    searched: list[str] = []
    for directory in candidate_dirs(resources_dir, extra_dirs):
        for name in names:
            candidate = directory / name
            searched.append(str(candidate))
            if candidate.is_file():
                return str(candidate)

    if search_path:
        for name in names:
            found = shutil.which(name)
            if found:
                return found

    logger.debug("%s not found. Searched:\n%s", names[0] if names else "tool", "\n".join(searched))
    return None


def _run_command(cmd: list[str], timeout: float) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        timeout=timeout,
        check=False,
    )


def probe_version(executable: str, flag: str = "-ver", timeout: Optional[float] = None) -> Optional[str]:
    """Run `<executable> <flag>` once and cache the first output line (None on failure)."""
    key = f"{executable}\x00{flag}"
    if key in _VERSION_CACHE:
        return _VERSION_CACHE[key]

    version: Optional[str] = None
    try:
        result = _run_command([executable, flag], timeout if timeout is not None else TOOL_PROBE_TIMEOUT)
        if result.returncode == 0:
            lines = (result.stdout or "").strip().splitlines()
            version = lines[0].strip() if lines else ""
        else:
            logger.warning("%s %s failed: %s", executable, flag, (result.stderr or "").strip())
    except (FileNotFoundError, PermissionError, subprocess.TimeoutExpired) as exc:
        logger.warning("Version probe failed for %s: %s", executable, exc)
    except OSError as exc:
        logger.warning("Version probe raised unexpected error for %s: %s", executable, exc)

    _VERSION_CACHE[key] = version
    return version


def reset_tool_cache() -> None:
    """Reset version probe cache (for testing or manual refresh)."""
    _VERSION_CACHE.clear()
