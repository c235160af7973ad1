"""
Embedded tag adapter: ExifTool wrapper for reading and writing portable metadata.

Field mapping (every format):
    title     -> Title, XMP-dc:Title
    comments  -> XMP-dc:Description, Description, Comment, Subject
    tags      -> Keywords, XMP-dc:Subject (cleared then added one by one)
    rating    -> XMP:Rating (0-5)

Still images also get the fields Windows Explorer shows (XPTitle, XPComment,
UserComment, XPKeywords); videos get QuickTime:Title and QuickTime:Comment
plus the XP comment and keyword fields.
"""
import asyncio
import json
import os
import re
import subprocess
from typing import Any, Dict, Iterable, List, Optional

from mmt_shared import ErrorCode, Result, classify_file, get_logger

from ...config import EXIFTOOL_MIN_VERSION, EXIFTOOL_NAMES, EXIFTOOL_TIMEOUT, TOOL_PROBE_TIMEOUT
from ...features.metadata.record import MetadataRecord, coerce_rating
from ...features.metadata.tags import dedupe, join_tags
from ...tool_detect import locate_executable, probe_version, version_satisfies_minimum
from ...utils import is_valid_file_path
from .process import decode_bytes_best_effort, run_tool

logger = get_logger(__name__)

_TAG_SAFE_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_:-]*$")

READ_TAGS = (
    "Title", "XPTitle", "Subject", "Keywords", "XPKeywords",
    "Comment", "XPComment", "UserComment", "Description", "XMP:Rating",
)
ALL_FIELDS = frozenset({"title", "comments", "tags", "rating"})

# Keyword lists live here; any other Subject is a free-text comment (PDF, WAV).
_KEYWORD_SUBJECT_GROUPS = ("XMP-dc",)
_QUICKTIME_GROUPS = ("QuickTime", "ItemList", "Keys", "UserData")


def _is_safe_exiftool_tag(tag: str) -> bool:
    """
    Return True if a tag/key looks safe to pass to ExifTool as `-TAG` / `-TAG=...`.

    We disallow whitespace and other special characters to prevent passing
    unintended options or malformed arguments to ExifTool.
    """
    if not tag or not isinstance(tag, str):
        return False
    s = tag.strip()
    if not s:
        return False
    if "\x00" in s or "\n" in s or "\r" in s or "\t" in s:
        return False
    if s.startswith("-"):
        return False
    return bool(_TAG_SAFE_PATTERN.match(s))


def _clean_value(value: Any) -> str:
    # Argument values may not span lines; ExifTool would treat the rest as a new option.
    return " ".join(str(value).splitlines()).strip()


def build_write_payload(
    record: MetadataRecord,
    fields: Iterable[str] = ALL_FIELDS,
    kind: str = "unknown",
) -> Dict[str, Any]:
    """
    Map record fields to ExifTool tags for a file of media `kind`.

    Only the named fields are included. Lists are written as clear-then-add,
    so an empty list clears the tag; None or "" clears a scalar tag.
    """
    wanted = set(fields)
    still = kind == "image"
    video = kind == "video"
    payload: Dict[str, Any] = {}
    if "title" in wanted:
        payload["Title"] = record.title
        payload["XMP-dc:Title"] = record.title
        if still:
            payload["XPTitle"] = record.title
        if video:
            payload["QuickTime:Title"] = record.title
    if "comments" in wanted:
        payload["XMP-dc:Description"] = record.comments
        payload["Description"] = record.comments
        payload["Comment"] = record.comments
        # Written before XMP-dc:Subject so the keyword list below wins for XMP.
        payload["Subject"] = record.comments
        if still or video:
            payload["XPComment"] = record.comments
            payload["UserComment"] = record.comments
        if video:
            payload["QuickTime:Comment"] = record.comments
    if "tags" in wanted:
        payload["Keywords"] = list(record.tags)
        payload["XMP-dc:Subject"] = list(record.tags)
        if still or video:
            # XPKeywords is a single string; Explorer splits it on ";".
            payload["XPKeywords"] = join_tags(record.tags)
    if "rating" in wanted:
        payload["XMP:Rating"] = record.rating
    return payload


def build_clear_payload(kind: str = "unknown") -> Dict[str, Any]:
    """Every tag `build_write_payload` touches for `kind`, assigned empty."""
    payload = build_write_payload(MetadataRecord(), kind=kind)
    return {key: ([] if isinstance(value, list) else None) for key, value in payload.items()}


def _values_for(data: Dict[str, Any], name: str) -> List[tuple[str, Any]]:
    """(group, value) pairs for tag `name` in `-G1` JSON output, in output order."""
    out: List[tuple[str, Any]] = []
    for key, value in data.items():
        group, _, tag = key.rpartition(":")
        if tag == name and value not in (None, "", []):
            out.append((group, value))
    return out


def _prefer_groups(pairs: List[tuple[str, Any]], groups: tuple[str, ...]) -> List[tuple[str, Any]]:
    return sorted(pairs, key=lambda pair: 0 if pair[0] in groups else 1)


def _first_text(pairs: List[tuple[str, Any]], skip_groups: tuple[str, ...] = ()) -> str:
    for group, value in pairs:
        if group in skip_groups:
            continue
        if isinstance(value, list):
            value = "; ".join(str(v) for v in value if v not in (None, ""))
        text = str(value).strip()
        if text:
            return text
    return ""


def record_from_exiftool_output(data: Dict[str, Any], kind: str = "unknown") -> MetadataRecord:
    """
    Translate one ExifTool JSON object into the canonical record.

    Missing keys mean "not present in file"; both that and empty values read as
    "no value". Videos prefer the QuickTime title and comment. Comments fall
    back Comment > Description > XPComment > UserComment > (non-keyword) Subject.
    Tags are XPKeywords, then Keywords, then XMP-dc:Subject, deduplicated.
    """
    titles = _values_for(data, "Title")
    comment_values = _values_for(data, "Comment")
    if kind == "video":
        titles = _prefer_groups(titles, _QUICKTIME_GROUPS)
        comment_values = _prefer_groups(comment_values, _QUICKTIME_GROUPS)
    title = _first_text(titles) or _first_text(_values_for(data, "XPTitle"))
    comments = (
        _first_text(comment_values)
        or _first_text(_values_for(data, "Description"))
        or _first_text(_values_for(data, "XPComment"))
        or _first_text(_values_for(data, "UserComment"))
        or _first_text(_values_for(data, "Subject"), skip_groups=_KEYWORD_SUBJECT_GROUPS)
    )
    keyword_lists = [value for _, value in _values_for(data, "XPKeywords")]
    keyword_lists += [value for _, value in _values_for(data, "Keywords")]
    keyword_lists += [value for group, value in _values_for(data, "Subject") if group in _KEYWORD_SUBJECT_GROUPS]
    ratings = _values_for(data, "Rating")
    return MetadataRecord(
        title=title,
        comments=comments,
        tags=dedupe(*keyword_lists),
        rating=coerce_rating(ratings[0][1]) if ratings else 0,
    )


class ExifTool:
    """
    ExifTool wrapper for embedded metadata operations.

    Never raises exceptions - always returns Result.
    """

    store_name = "embedded"

    def __init__(
        self,
        bin_name: Optional[str] = None,
        timeout: Optional[float] = None,
        names: Iterable[str] = EXIFTOOL_NAMES,
        resources_dir: Optional[str] = None,
        extra_dirs: Iterable[str] = (),
        search_path: bool = True,
        min_version: Optional[str] = None,
        probe_timeout: Optional[float] = None,
    ):
        """
        Initialize ExifTool adapter.

        Args:
            bin_name: ExifTool binary name or path (probed first)
            timeout: Command timeout in seconds
            names: Executable names probed in each candidate directory
            resources_dir: Packaged-app resource directory
            extra_dirs: Additional directories to probe
            search_path: Fall back to PATH lookup
            min_version: Minimum accepted `-ver` output
            probe_timeout: Timeout for the `-ver` probe
        """
        self.timeout = float(timeout) if timeout is not None else float(EXIFTOOL_TIMEOUT)
        self.min_version = EXIFTOOL_MIN_VERSION if min_version is None else str(min_version)
        self.probe_timeout = float(probe_timeout) if probe_timeout is not None else float(TOOL_PROBE_TIMEOUT)
        self.bin = locate_executable(
            names,
            explicit=bin_name,
            resources_dir=resources_dir,
            extra_dirs=extra_dirs,
            search_path=search_path,
        )
        self._available: Optional[bool] = None if self.bin else False
        self.version: Optional[str] = None

    def is_available(self) -> bool:
        """Located and answering `-ver` (probed once, then cached)."""
        if self._available is not None:
            return self._available
        self.version = probe_version(self.bin or "", "-ver", timeout=self.probe_timeout)
        available = self.version is not None
        if available and not version_satisfies_minimum(self.version, self.min_version):
            logger.warning("ExifTool version %s does not meet minimum required %s", self.version, self.min_version)
            available = False
        if available:
            logger.info("ExifTool detected: version %s", self.version)
        else:
            logger.warning("ExifTool not usable - embedded metadata disabled")
        self._available = available
        return available

    def _availability_error(self) -> Optional[Result[Any]]:
        if self.is_available():
            return None
        return Result.Err(ErrorCode.TOOL_MISSING, "ExifTool not available")

    def _target_args(self, path: str) -> tuple[List[str], Optional[bytes]]:
        # Non-ASCII paths survive the Windows command line only through an argfile.
        if os.name == "nt":
            return ["-charset", "filename=utf8", "-@", "-"], f"{path}\r\n".encode("utf-8", errors="replace")
        return [path], None

    def build_read_command(self, path: str) -> tuple[List[str], Optional[bytes]]:
        cmd = [self.bin or "exiftool", "-json", "-G1", "-a", "-s"]
        cmd.extend(f"-{tag}" for tag in READ_TAGS)
        target, stdin_input = self._target_args(path)
        cmd.extend(target)
        return cmd, stdin_input

    @staticmethod
    def _parse_read_process(process: subprocess.CompletedProcess, path: str) -> Result[MetadataRecord]:
        stdout, stdout_rep = decode_bytes_best_effort(process.stdout)
        stderr, _ = decode_bytes_best_effort(process.stderr)
        if stdout_rep:
            logger.warning("ExifTool output contained decoding replacement characters for %s", path)

        if process.returncode != 0:
            stderr_msg = stderr.strip()
            logger.warning("ExifTool error for %s: %s", path, stderr_msg)
            return Result.Err(
                ErrorCode.ADAPTER_FAILED,
                stderr_msg or "ExifTool command failed",
                return_code=int(process.returncode),
            )
        if not stdout.strip():
            return Result.Err(ErrorCode.PARSE_ERROR, "ExifTool returned empty output")
        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as exc:
            logger.error("ExifTool JSON parse error: %s", exc)
            return Result.Err(ErrorCode.PARSE_ERROR, f"Failed to parse ExifTool output: {exc}")
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return Result.Ok(record_from_exiftool_output(data[0], classify_file(path)))
        return Result.Err(ErrorCode.PARSE_ERROR, "No metadata found")

    def get(self, path: str) -> Result[MetadataRecord]:
        """
        Read embedded metadata from file.

        Args:
            path: File path

        Returns:
            Result with the record or error
        """
        availability_error = self._availability_error()
        if availability_error is not None:
            return availability_error
        if not is_valid_file_path(path):
            return Result.Err(ErrorCode.INVALID_INPUT, "Invalid file path")

        cmd, stdin_input = self.build_read_command(str(path))
        try:
            process = run_tool(cmd, timeout=self.timeout, stdin_input=stdin_input)
            return self._parse_read_process(process, str(path))
        except subprocess.TimeoutExpired:
            logger.error("ExifTool timeout for %s", path)
            return Result.Err(ErrorCode.TIMEOUT, f"ExifTool timeout after {self.timeout}s")
        except OSError as exc:
            logger.error("ExifTool unexpected error: %s", exc)
            return Result.Err(ErrorCode.ADAPTER_FAILED, str(exc))

    @staticmethod
    def _invalid_write_keys(metadata: dict) -> List[str]:
        invalid_keys: List[str] = []
        for key in (metadata or {}).keys():
            if not isinstance(key, str):
                invalid_keys.append(str(key))
                continue
            if not _is_safe_exiftool_tag(key.strip()):
                invalid_keys.append(key.strip())
        return invalid_keys

    @staticmethod
    def _append_metadata_write_args(cmd: List[str], metadata: dict) -> None:
        for key, value in (metadata or {}).items():
            if value is None:
                cmd.append(f"-{key}=")
                continue
            if isinstance(value, list):
                cmd.append(f"-{key}=")
                for item in value:
                    if item is None:
                        continue
                    text = _clean_value(item)
                    if text:
                        cmd.append(f"-{key}+={text}")
                continue
            cmd.append(f"-{key}={_clean_value(value)}")

    def build_write_command(self, path: str, metadata: dict) -> tuple[List[str], Optional[bytes]]:
        # -m: ignore minor warnings, -P: keep the file's modification time
        cmd = [self.bin or "exiftool", "-overwrite_original", "-m", "-P"]
        self._append_metadata_write_args(cmd, metadata)
        target, stdin_input = self._target_args(path)
        cmd.extend(target)
        return cmd, stdin_input

    def write(self, path: str, metadata: dict) -> Result[bool]:
        """
        Write raw tag -> value pairs.

        Args:
            path: File path
            metadata: Tag/value pairs; None clears, lists are clear-then-add

        Returns:
            Result with success boolean
        """
        availability_error = self._availability_error()
        if availability_error is not None:
            return availability_error
        if not is_valid_file_path(path):
            return Result.Err(ErrorCode.INVALID_INPUT, "Invalid file path")
        if not os.path.isfile(str(path)):
            return Result.Err(ErrorCode.NOT_FOUND, "File not found")

        invalid_keys = self._invalid_write_keys(metadata)
        if invalid_keys:
            return Result.Err(ErrorCode.INVALID_INPUT, "Invalid ExifTool tag format", invalid_tags=invalid_keys)

        cmd, stdin_input = self.build_write_command(str(path), metadata)
        try:
            process = run_tool(cmd, timeout=self.timeout, stdin_input=stdin_input)
        except subprocess.TimeoutExpired:
            logger.error("ExifTool write timeout for %s", path)
            return Result.Err(ErrorCode.TIMEOUT, f"ExifTool write timeout after {self.timeout}s")
        except OSError as exc:
            logger.error("ExifTool write error: %s", exc)
            return Result.Err(ErrorCode.ADAPTER_FAILED, str(exc))

        if process.returncode != 0:
            stderr, _ = decode_bytes_best_effort(process.stderr)
            stdout, _ = decode_bytes_best_effort(process.stdout)
            message = stderr.strip() or stdout.strip() or "ExifTool write failed"
            logger.warning("ExifTool write error for %s: %s", path, message)
            return Result.Err(ErrorCode.ADAPTER_FAILED, message, return_code=int(process.returncode))
        logger.debug("Embedded metadata written to %s", path)
        return Result.Ok(True)

    def set(self, path: str, record: MetadataRecord, fields: Iterable[str] = ALL_FIELDS) -> Result[bool]:
        """Embed `record` (limited to `fields`) into the file."""
        payload = build_write_payload(record, fields, classify_file(str(path)))
        if not payload:
            return Result.Ok(True)
        return self.write(path, payload)

    def clear(self, path: str) -> Result[bool]:
        """Blank every embedded field this adapter writes."""
        return self.write(path, build_clear_payload(classify_file(str(path))))

    async def aget(self, path: str) -> Result[MetadataRecord]:
        """Async wrapper for get() executed off the event loop thread."""
        return await asyncio.to_thread(self.get, path)

    async def aset(self, path: str, record: MetadataRecord) -> Result[bool]:
        """Async wrapper for set() executed off the event loop thread."""
        return await asyncio.to_thread(self.set, path, record)
