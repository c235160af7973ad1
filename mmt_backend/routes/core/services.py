"""
Service management and initialization.
"""
import asyncio
import threading
from typing import Any

from mmt_shared import Result, get_logger

from ...deps import build_services

logger = get_logger(__name__)

_services: dict[str, Any] | None = None
_services_error: str | None = None
_services_lock: asyncio.Lock | None = None
_services_lock_guard = threading.Lock()


def _get_services_lock() -> asyncio.Lock:
    global _services_lock
    if _services_lock is not None:
        return _services_lock
    with _services_lock_guard:
        if _services_lock is None:
            _services_lock = asyncio.Lock()
        return _services_lock


async def _build_services(force: bool = False) -> dict[str, Any] | None:
    global _services, _services_error
    async with _get_services_lock():
        if _services and not force:
            return _services

        try:
            services_result = await build_services()
        except Exception as exc:
            _services_error = str(exc)
            logger.error("Failed to initialize services: %s", exc, exc_info=True)
            _services = None
            return None

        if not services_result.ok:
            _services_error = services_result.error or "Initialization failed"
            logger.error("Failed to initialize services: %s", _services_error)
            _services = None
            return None

        _services = services_result.data
        _services_error = None
        return _services


async def _require_services() -> tuple[dict[str, Any] | None, Result[Any] | None]:
    services = await _build_services()
    if services:
        return services, None
    return None, Result.Err(
        "SERVICE_UNAVAILABLE",
        "Services are unavailable",
        detail=_services_error or "Initialization failed",
    )


def set_services(services: dict[str, Any] | None) -> None:
    """Install a prebuilt service container (CLI `serve`, tests)."""
    global _services, _services_error
    _services = services
    _services_error = None


def get_services_error() -> str | None:
    """Get the current services error if any."""
    return _services_error


async def prewarm_services() -> None:
    """Pre-warm services in the background so the first request is fast."""
    await _build_services()
