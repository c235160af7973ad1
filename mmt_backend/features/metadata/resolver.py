"""
Metadata resolver - fans reads and writes out to the shell, embedded and
sidecar stores according to the file's capability class.

Store failures are isolated: an unavailable or failing store is logged,
reported in `meta["stores"]`, and the operation carries on with the others.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from mmt_shared import ErrorCode, Result, get_logger, log_structured, timer

from ...adapters.fs.sidecar import SidecarMode
from ...utils import is_valid_file_path
from .classifier import CapabilityClass, classify
from .merge import merge_records
from .ports import STORE_EMBEDDED, STORE_SHELL, STORE_SIDECAR, MetadataPort, SidecarPort
from .record import MetadataPatch, MetadataRecord

logger = get_logger(__name__)

ALL_FIELDS = frozenset({"title", "comments", "tags", "rating"})
SCALAR_FIELDS = frozenset({"title", "comments", "rating"})
_SIDECAR_FIELDS: Dict[CapabilityClass, frozenset] = {
    CapabilityClass.TAGS_SIDECAR_ONLY: frozenset({"tags"}),
}


@dataclass
class StoreStatus:
    """Outcome of one store operation inside a resolver call."""

    store: str
    action: str
    attempted: bool
    ok: bool
    code: str = "OK"
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "store": self.store,
            "action": self.action,
            "attempted": self.attempted,
            "ok": self.ok,
            "code": self.code,
            "error": self.error,
        }


def _skipped(store: str, action: str, code: str) -> StoreStatus:
    return StoreStatus(store=store, action=action, attempted=False, ok=False, code=code)


class MetadataResolver:
    """
    Reads, writes and clears title/comments/tags/rating for one media file.

    Args:
        shell: Shell property adapter (DBM.PropTool), or None
        embedded: Embedded tag adapter (ExifTool), or None
        sidecar: Sidecar JSON store
    """

    def __init__(
        self,
        shell: Optional[MetadataPort],
        embedded: Optional[MetadataPort],
        sidecar: SidecarPort,
    ):
        self.shell = shell
        self.embedded = embedded
        self.sidecar = sidecar

    # ------------------------------------------------------------------
    # availability / store calls
    # ------------------------------------------------------------------

    @staticmethod
    def _port_available(port: Optional[MetadataPort]) -> bool:
        if port is None:
            return False
        try:
            return bool(port.is_available())
        except Exception as exc:
            logger.warning("Availability check failed for %s: %s", getattr(port, "store_name", port), exc)
            return False

    @staticmethod
    def _sidecar_scope(capability: CapabilityClass, shell_ok: bool) -> frozenset:
        """Fields a fallback sidecar write may carry for `capability`."""
        if capability == CapabilityClass.SHELL_PRIMARY and shell_ok:
            # Tags stay with the shell once it accepted them.
            return SCALAR_FIELDS
        return _SIDECAR_FIELDS.get(capability, ALL_FIELDS)

    def shell_available(self) -> bool:
        return self._port_available(self.shell)

    def embedded_available(self) -> bool:
        return self._port_available(self.embedded)

    @staticmethod
    def _call(store: str, action: str, fn: Callable[..., Result], *args: Any, **kwargs: Any) -> tuple[Result, StoreStatus]:
        try:
            with timer(f"{store} {action}", logger):
                res = fn(*args, **kwargs)
        except Exception as exc:
            logger.warning("%s %s raised: %s", store, action, exc)
            res = Result.Err(ErrorCode.ADAPTER_FAILED, str(exc))
        if not isinstance(res, Result):
            res = Result.Err(ErrorCode.ADAPTER_FAILED, f"{store} {action} returned {type(res).__name__}")
        if not res.ok:
            logger.warning("%s %s failed (%s): %s", store, action, res.code, res.error)
        status = StoreStatus(
            store=store,
            action=action,
            attempted=True,
            ok=bool(res.ok),
            code=str(res.code),
            error=res.error,
        )
        return res, status

    # ------------------------------------------------------------------
    # read
    # ------------------------------------------------------------------

    def _collect(self, path: str, capability: CapabilityClass, statuses: List[StoreStatus]) -> MetadataRecord:
        sources: Dict[str, Optional[MetadataRecord]] = {}

        if self.shell_available():
            res, status = self._call(STORE_SHELL, "get", self.shell.get, path)
            statuses.append(status)
            if res.ok:
                sources[STORE_SHELL] = res.data
        else:
            statuses.append(_skipped(STORE_SHELL, "get", ErrorCode.TOOL_MISSING.value))

        res, status = self._call(STORE_SIDECAR, "read", self.sidecar.read, path)
        if res.ok and res.meta.get("corrupt"):
            status.code = ErrorCode.SIDECAR_CORRUPT.value
        statuses.append(status)
        if res.ok:
            sources[STORE_SIDECAR] = res.data

        if capability == CapabilityClass.EMBED_REQUIRED:
            if self.embedded_available():
                res, status = self._call(STORE_EMBEDDED, "get", self.embedded.get, path)
                statuses.append(status)
                if res.ok:
                    sources[STORE_EMBEDDED] = res.data
            else:
                statuses.append(_skipped(STORE_EMBEDDED, "get", ErrorCode.TOOL_MISSING.value))

        return merge_records(capability, sources)

    def read(self, path: str) -> Result[MetadataRecord]:
        """
        Resolve the current metadata for `path`.

        Always Ok with a full record when the path is usable; failing stores
        simply contribute nothing.
        """
        if not is_valid_file_path(path):
            return Result.Err(ErrorCode.INVALID_INPUT, "Invalid file path")
        capability = classify(path)
        statuses: List[StoreStatus] = []
        try:
            record = self._collect(str(path), capability, statuses)
        except Exception as exc:
            logger.error("Metadata read failed for %s: %s", path, exc)
            return Result.Err(ErrorCode.READ_FAILED, f"Metadata read failed: {exc}")
        logger.debug("read %s (%s)", path, capability.value)
        return Result.Ok(record, capability=capability.value, stores=[s.to_dict() for s in statuses])

    # ------------------------------------------------------------------
    # write
    # ------------------------------------------------------------------

    def write(self, path: str, record: Union[MetadataRecord, MetadataPatch]) -> Result[MetadataRecord]:
        """
        Fan `record` out to the stores that apply to `path`, then read back.

        A `MetadataPatch` leaves unsupplied fields untouched; a full
        `MetadataRecord` replaces every field. An all-empty request writes
        nothing and returns the current state.
        """
        if not is_valid_file_path(path):
            return Result.Err(ErrorCode.INVALID_INPUT, "Invalid file path")
        path = str(path)
        patch = record if isinstance(record, MetadataPatch) else MetadataPatch.from_record(record)
        if patch.to_record().is_empty():
            logger.debug("write %s skipped (nothing to persist)", path)
            current = self.read(path)
            if current.ok:
                current.meta["skipped"] = True
            return current
        try:
            return self._write(path, patch)
        except Exception as exc:
            logger.error("Metadata write failed for %s: %s", path, exc)
            return Result.Err(ErrorCode.UPDATE_FAILED, f"Metadata write failed: {exc}")

    def _write(self, path: str, patch: MetadataPatch) -> Result[MetadataRecord]:
        capability = classify(path)
        statuses: List[StoreStatus] = []
        supplied = patch.supplied()

        target = patch.to_record()
        if supplied != ALL_FIELDS:
            # Shell and embedded writes replace every field; fill the gaps from what is stored now.
            target = patch.apply_to(self._collect(path, capability, []))

        shell_ok = False
        if capability != CapabilityClass.SIDECAR_ONLY:
            if self.shell_available():
                shell_record = target
                if capability == CapabilityClass.TAGS_SIDECAR_ONLY:
                    shell_record = MetadataRecord(title=target.title, comments=target.comments, rating=target.rating)
                res, status = self._call(STORE_SHELL, "set", self.shell.set, path, shell_record)
                statuses.append(status)
                shell_ok = bool(res.ok)
            else:
                statuses.append(_skipped(STORE_SHELL, "set", ErrorCode.TOOL_MISSING.value))

        embedded_available = self.embedded_available()
        embedded_ok = False
        if capability == CapabilityClass.EMBED_REQUIRED:
            if embedded_available:
                res, status = self._call(STORE_EMBEDDED, "set", self.embedded.set, path, target)
                statuses.append(status)
                embedded_ok = bool(res.ok)
            else:
                statuses.append(_skipped(STORE_EMBEDDED, "set", ErrorCode.TOOL_MISSING.value))

        needs_sidecar = (
            capability in (CapabilityClass.SIDECAR_ONLY, CapabilityClass.TAGS_SIDECAR_ONLY)
            or not embedded_available
            or (capability == CapabilityClass.EMBED_REQUIRED and not embedded_ok)
            or not any(s.ok for s in statuses)
        )
        sidecar_error: Optional[Result] = None
        if needs_sidecar:
            scoped = patch.only(self._sidecar_scope(capability, shell_ok) & supplied)
            if scoped.supplied():
                res, status = self._call(STORE_SIDECAR, "write", self.sidecar.write, path, scoped, SidecarMode.PATCH)
                statuses.append(status)
                if not res.ok:
                    sidecar_error = res
            else:
                statuses.append(_skipped(STORE_SIDECAR, "write", "NOTHING_TO_WRITE"))

        stores = [s.to_dict() for s in statuses]
        if sidecar_error is not None and not any(s.ok for s in statuses if s.store != STORE_SIDECAR):
            return Result.Err(
                ErrorCode.SIDECAR_IO_ERROR,
                sidecar_error.error or "Sidecar write failed",
                capability=capability.value,
                stores=stores,
            )

        log_structured(
            logger,
            logging.INFO,
            "write",
            path=path,
            capability=capability.value,
            stores=",".join(f"{s.store}:{'ok' if s.ok else s.code}" for s in statuses),
        )
        merged = self._collect(path, capability, [])
        return Result.Ok(merged, capability=capability.value, stores=stores)

    # ------------------------------------------------------------------
    # clear
    # ------------------------------------------------------------------

    def clear(self, path: str) -> Result[MetadataRecord]:
        """Blank every field in every store that `read` consults for `path`."""
        if not is_valid_file_path(path):
            return Result.Err(ErrorCode.INVALID_INPUT, "Invalid file path")
        path = str(path)
        try:
            return self._clear(path)
        except Exception as exc:
            logger.error("Metadata clear failed for %s: %s", path, exc)
            return Result.Err(ErrorCode.UPDATE_FAILED, f"Metadata clear failed: {exc}")

    def _clear(self, path: str) -> Result[MetadataRecord]:
        capability = classify(path)
        statuses: List[StoreStatus] = []

        # read() consults the shell for every class.
        if self.shell_available():
            _, status = self._call(STORE_SHELL, "clear", self.shell.clear, path)
            statuses.append(status)
        else:
            statuses.append(_skipped(STORE_SHELL, "clear", ErrorCode.TOOL_MISSING.value))

        if capability == CapabilityClass.EMBED_REQUIRED:
            if self.embedded_available():
                _, status = self._call(STORE_EMBEDDED, "clear", self.embedded.clear, path)
                statuses.append(status)
            else:
                statuses.append(_skipped(STORE_EMBEDDED, "clear", ErrorCode.TOOL_MISSING.value))

        if self.sidecar.exists(path):
            res, status = self._call(
                STORE_SIDECAR, "clear", self.sidecar.write, path, MetadataRecord(), SidecarMode.OVERWRITE, force=True
            )
            statuses.append(status)
            if not res.ok:
                return Result.Err(
                    res.code,
                    res.error or "Sidecar clear failed",
                    capability=capability.value,
                    stores=[s.to_dict() for s in statuses],
                )
        else:
            statuses.append(_skipped(STORE_SIDECAR, "clear", ErrorCode.NOT_FOUND.value))

        logger.info("clear %s (%s)", path, capability.value)
        merged = self._collect(path, capability, [])
        return Result.Ok(merged, capability=capability.value, stores=[s.to_dict() for s in statuses])

    # ------------------------------------------------------------------
    # async wrappers
    # ------------------------------------------------------------------

    async def aread(self, path: str) -> Result[MetadataRecord]:
        """Async wrapper for read() executed off the event loop thread."""
        return await asyncio.to_thread(self.read, path)

    async def awrite(self, path: str, record: Union[MetadataRecord, MetadataPatch]) -> Result[MetadataRecord]:
        """Async wrapper for write() executed off the event loop thread."""
        return await asyncio.to_thread(self.write, path, record)

    async def aclear(self, path: str) -> Result[MetadataRecord]:
        """Async wrapper for clear() executed off the event loop thread."""
        return await asyncio.to_thread(self.clear, path)
