"""
Subprocess plumbing shared by the external tool adapters.
"""
from __future__ import annotations

import os
import subprocess
from typing import Optional, Sequence, Tuple

from mmt_shared import get_logger

logger = get_logger(__name__)

_LOG_OUTPUT_MAX = 2000


def decode_bytes_best_effort(blob: Optional[bytes]) -> Tuple[str, bool]:
    """
    Decode subprocess bytes robustly across Windows code pages.

    Returns:
      (text, had_replacement_chars)
    """
    if blob is None:
        return "", False
    if not isinstance(blob, (bytes, bytearray)):
        try:
            text = str(blob)
        except Exception:
            text = ""
        return text, ("\ufffd" in text)

    raw = bytes(blob)
    if not raw:
        return "", False

    for enc in ("utf-8", "utf-8-sig"):
        try:
            return raw.decode(enc, errors="strict"), False
        except UnicodeDecodeError:
            pass

    # Windows helpers may emit the local codepage on stderr/stdout.
    try:
        return raw.decode("cp1252", errors="strict"), False
    except UnicodeDecodeError:
        pass

    utf_text = raw.decode("utf-8", errors="replace")
    return utf_text, "\ufffd" in utf_text


def format_command(cmd: Sequence[str]) -> str:
    """Render a command line for logs, quoting arguments that contain whitespace."""
    parts = []
    for arg in cmd:
        text = str(arg)
        parts.append(f'"{text}"' if any(ch.isspace() for ch in text) else text)
    return " ".join(parts)


def _clip(text: str) -> str:
    text = (text or "").strip()
    if len(text) > _LOG_OUTPUT_MAX:
        return text[:_LOG_OUTPUT_MAX] + "..."
    return text


def run_tool(
    cmd: Sequence[str],
    *,
    timeout: float,
    stdin_input: Optional[bytes] = None,
    cwd: Optional[str] = None,
) -> subprocess.CompletedProcess:
    """
    Run an external tool with captured bytes output and no shell.

    Raises subprocess.TimeoutExpired / OSError; adapters convert those to Result.
    """
    logger.debug("run: %s", format_command(cmd))
    kwargs = {}
    if os.name == "nt":
        kwargs["creationflags"] = getattr(subprocess, "CREATE_NO_WINDOW", 0)
    process = subprocess.run(
        list(cmd),
        capture_output=True,
        text=False,
        check=False,
        timeout=timeout,
        input=stdin_input,
        cwd=cwd,
        shell=False,
        **kwargs,
    )
    out, _ = decode_bytes_best_effort(process.stdout)
    err, _ = decode_bytes_best_effort(process.stderr)
    logger.debug('exit %s | out="%s" | err="%s"', process.returncode, _clip(out), _clip(err))
    return process
