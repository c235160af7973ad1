"""
Shell property adapter: wraps the DBM.PropTool helper executable.

Contract:
    DBM.PropTool get --path P
    DBM.PropTool set --path P --title T --tags "a; b" --comments C --rating N

On success the helper prints one JSON object. A non-zero exit is a failure;
non-JSON output with exit 0 is a raw success carrying no fields.
"""
from __future__ import annotations

import asyncio
import json
import subprocess
from typing import Any, Iterable, Optional

from mmt_shared import ErrorCode, Result, get_logger

from ...config import PROPTOOL_NAMES, PROPTOOL_TIMEOUT
from ...features.metadata.record import MetadataRecord, coerce_rating
from ...features.metadata.tags import join_tags, normalize
from ...tool_detect import locate_executable
from ...utils import is_valid_file_path
from .process import decode_bytes_best_effort, run_tool

logger = get_logger(__name__)


def _first_key(data: dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if key in data and data[key] not in (None, ""):
            return data[key]
    return None


def record_from_shell_output(data: dict[str, Any]) -> MetadataRecord:
    """Translate the helper's JSON object into the canonical record."""
    title = _first_key(data, ("title", "Title"))
    comments = _first_key(data, ("comments", "comment", "Comments", "Comment", "description"))
    tags = _first_key(data, ("tags", "Tags", "keywords", "Keywords"))
    rating = _first_key(data, ("rating", "Rating"))
    return MetadataRecord(
        title=title if isinstance(title, str) else "",
        comments=comments if isinstance(comments, str) else "",
        tags=normalize(tags),
        rating=coerce_rating(rating),
    )


class PropTool:
    """
    DBM.PropTool wrapper for OS-native file properties.

    Never raises exceptions - always returns Result.
    """

    store_name = "shell"

    def __init__(
        self,
        bin_name: Optional[str] = None,
        timeout: Optional[float] = None,
        names: Iterable[str] = PROPTOOL_NAMES,
        resources_dir: Optional[str] = None,
        extra_dirs: Iterable[str] = (),
        search_path: bool = True,
    ):
        """
        Initialize the adapter and locate the helper.

        Args:
            bin_name: Explicit helper path or name (probed first)
            timeout: Command timeout in seconds
            names: Executable names probed in each candidate directory
            resources_dir: Packaged-app resource directory
            extra_dirs: Additional directories to probe
            search_path: Fall back to PATH lookup
        """
        self.timeout = float(timeout) if timeout is not None else float(PROPTOOL_TIMEOUT)
        self.bin = locate_executable(
            names,
            explicit=bin_name,
            resources_dir=resources_dir,
            extra_dirs=extra_dirs,
            search_path=search_path,
        )
        if not self.bin:
            logger.warning("DBM.PropTool not found - shell properties disabled")

    def is_available(self) -> bool:
        return bool(self.bin)

    def _run(self, args: list[str]) -> Result[dict[str, Any]]:
        if not self.bin:
            return Result.Err(ErrorCode.TOOL_MISSING, "DBM.PropTool not found")
        try:
            process = run_tool([self.bin, *args], timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.error("DBM.PropTool timeout after %ss (%s)", self.timeout, args[0] if args else "")
            return Result.Err(ErrorCode.TIMEOUT, f"DBM.PropTool timeout after {self.timeout}s")
        except OSError as exc:
            logger.error("DBM.PropTool spawn error: %s", exc)
            return Result.Err(ErrorCode.ADAPTER_FAILED, f"DBM.PropTool failed to start: {exc}")
        return self._parse_process(process)

    @staticmethod
    def _parse_process(process: subprocess.CompletedProcess) -> Result[dict[str, Any]]:
        stdout, _ = decode_bytes_best_effort(process.stdout)
        stderr, _ = decode_bytes_best_effort(process.stderr)
        if process.returncode != 0:
            message = stderr.strip() or f"DBM.PropTool exited {process.returncode}"
            logger.warning("DBM.PropTool error: %s", message)
            return Result.Err(ErrorCode.ADAPTER_FAILED, message, return_code=int(process.returncode))
        text = stdout.strip()
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, ValueError):
            return Result.Ok({"ok": True, "raw": text}, raw=True)
        if not isinstance(data, dict):
            return Result.Ok({"ok": True, "raw": text}, raw=True)
        return Result.Ok(data)

    def get(self, path: str) -> Result[MetadataRecord]:
        """Read shell properties for `path`."""
        if not is_valid_file_path(path):
            return Result.Err(ErrorCode.INVALID_INPUT, "Invalid file path")
        res = self._run(["get", "--path", str(path)])
        if not res.ok:
            return Result.Err(res.code, res.error or "DBM.PropTool get failed", **res.meta)
        data = res.data or {}
        if res.meta.get("raw"):
            return Result.Ok(MetadataRecord(), raw=True)
        return Result.Ok(record_from_shell_output(data))

    @staticmethod
    def build_set_args(path: str, record: MetadataRecord) -> list[str]:
        return [
            "set",
            "--path", str(path),
            "--title", record.title,
            "--tags", join_tags(record.tags),
            "--comments", record.comments,
            "--rating", str(record.rating),
        ]

    def set(self, path: str, record: MetadataRecord) -> Result[bool]:
        """Write every shell property from `record` (empty values blank the property)."""
        if not is_valid_file_path(path):
            return Result.Err(ErrorCode.INVALID_INPUT, "Invalid file path")
        res = self._run(self.build_set_args(path, record))
        if not res.ok:
            return Result.Err(res.code, res.error or "DBM.PropTool set failed", **res.meta)
        data = res.data or {}
        if data.get("ok") is False:
            error = str(data.get("error") or "DBM.PropTool reported failure")
            logger.warning("DBM.PropTool set failed for %s: %s", path, error)
            return Result.Err(ErrorCode.ADAPTER_FAILED, error)
        return Result.Ok(True)

    def clear(self, path: str) -> Result[bool]:
        return self.set(path, MetadataRecord())

    def probe(self, path: Optional[str] = None) -> Result[dict[str, Any]]:
        """Report where the helper lives and, given a path, what it reads back."""
        if not self.bin:
            return Result.Err(ErrorCode.TOOL_MISSING, "DBM.PropTool not found")
        info: dict[str, Any] = {"exe": self.bin}
        if path:
            res = self.get(path)
            if not res.ok:
                return Result.Err(res.code, res.error or "probe failed", exe=self.bin)
            info["result"] = res.data.to_dict() if res.data else None
        return Result.Ok(info)

    async def aget(self, path: str) -> Result[MetadataRecord]:
        """Async wrapper for get() executed off the event loop thread."""
        return await asyncio.to_thread(self.get, path)

    async def aset(self, path: str, record: MetadataRecord) -> Result[bool]:
        """Async wrapper for set() executed off the event loop thread."""
        return await asyncio.to_thread(self.set, path, record)
