"""
Sidecar store: `<media path><suffix>` JSON files next to the media file.

The sidecar is the last-resort store for formats the shell and embedded
surfaces cannot hold. Reads never raise (missing or corrupt files read as
absent); writes are skipped when they would persist nothing and are atomic
(temp file in the same directory, then rename).
"""
from __future__ import annotations

import json
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from mmt_shared import ErrorCode, Result, get_logger, utc_iso

from ...config import SIDECAR_SUFFIX
from ...features.metadata.record import MetadataPatch, MetadataRecord

logger = get_logger(__name__)

UPDATED_KEY = "_updated"


class SidecarMode(str, Enum):
    OVERWRITE = "overwrite"
    PATCH = "patch"


def _record_from_json(data: dict[str, Any]) -> MetadataRecord:
    return MetadataRecord(
        title=data.get("title") if isinstance(data.get("title"), str) else "",
        comments=data.get("comments") if isinstance(data.get("comments"), str) else "",
        tags=data.get("tags") or [],
        rating=data.get("rating"),
    )


def _payload_for(record: MetadataRecord, updated: str) -> dict[str, Any]:
    return {
        "title": record.title,
        "comments": record.comments,
        "rating": record.rating,
        "tags": list(record.tags),
        UPDATED_KEY: updated,
    }


def _cleanup_temp_file(fd: Optional[int], tmp_path: Optional[str]) -> None:
    if fd is not None:
        try:
            os.close(fd)
        except OSError:
            pass
    if tmp_path:
        try:
            Path(tmp_path).unlink(missing_ok=True)
        except OSError as exc:
            logger.debug("Failed to remove sidecar temp file %s: %s", tmp_path, exc)


class SidecarStore:
    """JSON sidecar persistence for one metadata record per media file."""

    def __init__(self, suffix: str = SIDECAR_SUFFIX):
        self.suffix = suffix or SIDECAR_SUFFIX

    def path_for(self, path: str | os.PathLike) -> Path:
        return Path(f"{os.fspath(path)}{self.suffix}")

    def exists(self, path: str | os.PathLike) -> bool:
        try:
            return self.path_for(path).is_file()
        except OSError:
            return False

    def read(self, path: str | os.PathLike) -> Result[Optional[MetadataRecord]]:
        """
        Read the sidecar for `path`.

        Returns Ok(None) when the file is missing or unreadable/corrupt; the
        `corrupt` meta flag tells the two apart.
        """
        sidecar = self.path_for(path)
        data, corrupt = self._load(sidecar)
        if data is None:
            return Result.Ok(None, corrupt=corrupt, path=str(sidecar))
        return Result.Ok(_record_from_json(data), updated=data.get(UPDATED_KEY), path=str(sidecar))

    def _load(self, sidecar: Path) -> tuple[Optional[dict[str, Any]], bool]:
        try:
            if not sidecar.is_file():
                return None, False
            raw = sidecar.read_text(encoding="utf-8-sig")
        except OSError as exc:
            logger.warning("Sidecar unreadable, treating as absent (%s): %s", ErrorCode.SIDECAR_CORRUPT.value, exc)
            return None, True
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, ValueError) as exc:
            logger.warning("Sidecar %s is not valid JSON, treating as absent: %s", sidecar, exc)
            return None, True
        if not isinstance(data, dict):
            logger.warning("Sidecar %s does not hold a JSON object, treating as absent", sidecar)
            return None, True
        return data, False

    def write(
        self,
        path: str | os.PathLike,
        fields: MetadataPatch | MetadataRecord,
        mode: SidecarMode = SidecarMode.PATCH,
        *,
        force: bool = False,
    ) -> Result[Optional[MetadataRecord]]:
        """
        Persist `fields` for `path`.

        PATCH keeps stored values for fields `fields` leaves unsupplied;
        OVERWRITE resets them to empty. An all-empty result is never written
        unless `force` is set and a sidecar already exists (used to blank it).

        Returns Ok(record written) or Ok(previous record, skipped=True).
        """
        patch = fields if isinstance(fields, MetadataPatch) else MetadataPatch.from_record(fields)
        sidecar = self.path_for(path)

        prev_res = self.read(path)
        previous = prev_res.data if prev_res.ok else None

        if mode == SidecarMode.PATCH:
            merged = patch.apply_to(previous)
        else:
            merged = patch.to_record()

        if merged.is_empty() and not (force and sidecar.is_file()):
            logger.debug("Sidecar write skipped for %s (nothing to persist)", sidecar)
            return Result.Ok(previous, skipped=True, path=str(sidecar))

        updated = utc_iso()
        persisted = self._persist(sidecar, _payload_for(merged, updated))
        if not persisted.ok:
            return Result.Err(persisted.code, persisted.error or "Sidecar write failed", path=str(sidecar))
        logger.debug("Sidecar written: %s (%s)", sidecar, mode.value)
        return Result.Ok(merged, updated=updated, path=str(sidecar))

    @staticmethod
    def _persist(sidecar: Path, payload: dict[str, Any]) -> Result[bool]:
        fd: Optional[int] = None
        tmp_path: Optional[str] = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=str(sidecar.parent), prefix=f".{sidecar.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                fd = None
                json.dump(payload, handle, ensure_ascii=False, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            Path(tmp_path).replace(sidecar)
            tmp_path = None
            return Result.Ok(True)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Sidecar write failed for %s: %s", sidecar, exc)
            return Result.Err(ErrorCode.SIDECAR_IO_ERROR, f"Sidecar write failed: {exc}")
        finally:
            _cleanup_temp_file(fd, tmp_path)
