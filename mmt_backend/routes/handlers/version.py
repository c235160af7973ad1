"""
Version reporting endpoint.
"""
from aiohttp import web

from mmt_shared import Result
from mmt_shared.version import get_version_info

from ..core import _json_response


def register_version_routes(routes: web.RouteTableDef) -> None:
    """
    Expose the currently installed Media Meta Tagger version.
    """
    async def _get_version(_request: web.Request) -> web.Response:
        return _json_response(Result.Ok(get_version_info()))

    routes.get("/mmt/version")(_get_version)
