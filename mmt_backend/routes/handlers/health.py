"""
Tool status endpoint.
"""
from aiohttp import web

from mmt_shared import ErrorCode, Result
from mmt_shared.version import get_version_info

from ...config import get_tool_paths
from ..core import _json_response, _require_services


def register_health_routes(routes: web.RouteTableDef) -> None:
    """Register tool status routes."""

    @routes.get("/mmt/health/tools")
    async def tools_status(request):
        svc, error_result = await _require_services()
        if error_result:
            return _json_response(error_result)
        health = (svc or {}).get("health")
        if health is None:
            return _json_response(Result.Err(ErrorCode.SERVICE_UNAVAILABLE, "Health service unavailable"))

        path = (request.query.get("path") or "").strip() or None
        result = await health.status(path)
        if result.ok and isinstance(result.data, dict):
            result.data["configured"] = get_tool_paths()
            result.data["version"] = get_version_info()["version"]
        return _json_response(result)
