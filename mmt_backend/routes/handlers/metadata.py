"""
Metadata endpoints: read, write and clear one file's title/comments/tags/rating.
"""
from typing import Any, Awaitable, Callable

from aiohttp import web

from mmt_shared import ErrorCode, Result, get_logger

from ...features.metadata.record import MetadataPatch
from ...utils import is_valid_file_path
from ..core import _json_response, _read_json, _require_services, safe_error_message

logger = get_logger(__name__)


def _path_from_body(body: dict) -> Result[str]:
    raw = body.get("path") or body.get("file") or body.get("filepath")
    if not is_valid_file_path(raw):
        return Result.Err(ErrorCode.INVALID_INPUT, "Missing or invalid 'path'")
    return Result.Ok(str(raw).strip())


async def _resolver_request(
    request: web.Request,
    action: str,
    call: Callable[[Any, str, dict], Awaitable[Result]],
) -> web.Response:
    svc, error_result = await _require_services()
    if error_result:
        return _json_response(error_result)
    resolver = (svc or {}).get("metadata")
    if resolver is None:
        return _json_response(Result.Err(ErrorCode.SERVICE_UNAVAILABLE, "Metadata service unavailable"))

    body_res = await _read_json(request)
    if not body_res.ok:
        return _json_response(body_res)
    body = body_res.data or {}
    path_res = _path_from_body(body)
    if not path_res.ok:
        return _json_response(path_res)

    try:
        result = await call(resolver, path_res.data, body)
    except Exception as exc:
        logger.error("Metadata %s failed: %s", action, exc, exc_info=True)
        return _json_response(Result.Err(ErrorCode.UPDATE_FAILED, safe_error_message(exc, f"Metadata {action} failed")))
    return _json_response(result)


def register_metadata_routes(routes: web.RouteTableDef) -> None:
    """Register metadata read/write/clear routes."""

    @routes.post("/mmt/metadata/read")
    async def read_metadata(request):
        return await _resolver_request(request, "read", lambda r, path, _body: r.aread(path))

    @routes.post("/mmt/metadata/write")
    async def write_metadata(request):
        async def _write(resolver, path: str, body: dict) -> Result:
            payload = body.get("metadata") if isinstance(body.get("metadata"), dict) else body
            patch = MetadataPatch.from_payload(payload)
            return await resolver.awrite(path, patch)

        return await _resolver_request(request, "write", _write)

    @routes.post("/mmt/metadata/clear")
    async def clear_metadata(request):
        return await _resolver_request(request, "clear", lambda r, path, _body: r.aclear(path))
