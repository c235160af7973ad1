"""
Supported formats endpoint: extension groups and capability classes.
"""
from aiohttp import web

from mmt_shared import EXTENSIONS, Result, file_dialog_filters, supported_extensions

from ...features.metadata.classifier import capability_table
from ..core import _json_response


def register_formats_routes(routes: web.RouteTableDef) -> None:
    @routes.get("/mmt/formats")
    async def list_formats(_request):
        data = {
            "extensions": supported_extensions(),
            "kinds": {kind: list(exts) for kind, exts in EXTENSIONS.items() if exts},
            "capabilities": capability_table(),
            "filters": file_dialog_filters(),
        }
        return _json_response(Result.Ok(data))
