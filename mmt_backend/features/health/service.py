"""
Health service - external tool availability and log location.
"""
import asyncio
from typing import Any, Optional

from mmt_shared import Result, get_logger

from ...adapters.fs import SidecarStore
from ...adapters.tools import ExifTool, PropTool

logger = get_logger(__name__)


class HealthService:
    """
    Tool status service.

    Reports whether DBM.PropTool and ExifTool were found, where, and which
    version answered. Sidecars need no tool, so the service is never
    "unhealthy": missing tools only degrade it.
    """

    def __init__(
        self,
        proptool: PropTool,
        exiftool: ExifTool,
        sidecar: SidecarStore,
        log_file: Optional[str] = None,
    ):
        self.proptool = proptool
        self.exiftool = exiftool
        self.sidecar = sidecar
        self.log_file = log_file

    def _tools(self) -> dict[str, dict[str, Any]]:
        exif_available = self.exiftool.is_available()
        return {
            "proptool": {
                "available": self.proptool.is_available(),
                "path": self.proptool.bin,
            },
            "exiftool": {
                "available": exif_available,
                "path": self.exiftool.bin,
                "version": self.exiftool.version,
                "min_version": self.exiftool.min_version or None,
            },
        }

    @staticmethod
    def _determine_health(tools: dict[str, dict[str, Any]]) -> str:
        if all(t.get("available") for t in tools.values()):
            return "healthy"
        return "degraded"

    def status_sync(self, path: Optional[str] = None) -> Result[dict]:
        """
        Build the status report.

        Args:
            path: Optional file to read back through the shell helper

        Returns:
            Result with tools, sidecar suffix, log file and overall health
        """
        try:
            tools = self._tools()
            status: dict[str, Any] = {
                "tools": tools,
                "sidecar_suffix": self.sidecar.suffix,
                "log_file": self.log_file,
                "overall": self._determine_health(tools),
            }
            if path:
                probe = self.proptool.probe(path)
                status["probe"] = probe.data if probe.ok else {"error": probe.error, "code": probe.code}
            return Result.Ok(status)
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return Result.Err("HEALTH_CHECK_ERROR", str(exc))

    async def status(self, path: Optional[str] = None) -> Result[dict]:
        """Async wrapper for status_sync() executed off the event loop thread."""
        return await asyncio.to_thread(self.status_sync, path)
