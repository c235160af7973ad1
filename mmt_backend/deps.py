"""
Dependency injection - builds services.
Simple, debug-friendly DI without framework magic.
"""
from typing import Optional

from mmt_shared import Result, attach_file_handler, get_logger, log_success

from .adapters.fs import SidecarStore
from .adapters.tools import ExifTool, PropTool
from .config import AppConfig
from .features.health import HealthService
from .features.metadata.resolver import MetadataResolver

logger = get_logger(__name__)


def _init_tools(config: AppConfig) -> tuple[PropTool, ExifTool]:
    proptool = PropTool(
        bin_name=config.proptool_bin,
        timeout=config.proptool_timeout,
        names=config.proptool_names,
        resources_dir=config.resources_dir,
        extra_dirs=config.extra_tool_dirs,
        search_path=config.search_system_path,
    )
    exiftool = ExifTool(
        bin_name=config.exiftool_bin,
        timeout=config.exiftool_timeout,
        names=config.exiftool_names,
        resources_dir=config.resources_dir,
        extra_dirs=config.extra_tool_dirs,
        search_path=config.search_system_path,
        min_version=config.exiftool_min_version,
        probe_timeout=config.tool_probe_timeout,
    )
    return proptool, exiftool


def _log_tool_availability(proptool: PropTool, exiftool: ExifTool) -> None:
    if proptool.is_available():
        log_success(logger, f"DBM.PropTool is available ({proptool.bin})")
    else:
        logger.warning("DBM.PropTool not found - shell properties will fall back to sidecars")
    if exiftool.is_available():
        log_success(logger, f"ExifTool is available ({exiftool.version})")
    else:
        logger.warning("ExifTool not found - embedded metadata will fall back to sidecars")


def _attach_log_file(config: AppConfig) -> Optional[str]:
    if not config.log_file:
        return None
    handler = attach_file_handler(config.log_file)
    return config.log_file if handler is not None else None


async def build_services(config: Optional[AppConfig] = None) -> Result[dict]:
    """
    Build all services (DI container).

    Args:
        config: Settings to wire with (default: AppConfig.from_env())

    Returns:
        Result[dict] of service instances
    """
    logger.info("Building services...")
    try:
        config = config or AppConfig.from_env()
        log_file = _attach_log_file(config)
        proptool, exiftool = _init_tools(config)
        _log_tool_availability(proptool, exiftool)
        sidecar = SidecarStore(suffix=config.sidecar_suffix)
        resolver = MetadataResolver(shell=proptool, embedded=exiftool, sidecar=sidecar)
        services = {
            "config": config,
            "proptool": proptool,
            "exiftool": exiftool,
            "sidecar": sidecar,
            "metadata": resolver,
            "health": HealthService(proptool, exiftool, sidecar, log_file=log_file),
        }
    except Exception as exc:
        logger.error("Failed to build services: %s", exc)
        return Result.Err("SERVICE_UNAVAILABLE", f"Failed to build services: {exc}")

    log_success(logger, "All services initialized")
    return Result.Ok(services)
