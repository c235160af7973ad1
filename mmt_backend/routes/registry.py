"""
Route registration system.
Collects every handler module into one RouteTableDef and mounts it on an app.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable

from aiohttp import web

from mmt_shared import get_logger

from ..observability import API_PREFIX, ensure_observability
from .handlers import (
    register_formats_routes,
    register_health_routes,
    register_metadata_routes,
    register_version_routes,
)

logger = get_logger(__name__)

_APP_KEY_ROUTES_REGISTERED: web.AppKey[bool] = web.AppKey("_mmt_routes_registered", bool)


@web.middleware
async def security_headers_middleware(
    request: web.Request,
    handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
) -> web.StreamResponse:
    """Apply strict headers to API responses only."""
    response = await handler(request)
    if not (request.path or "").startswith(API_PREFIX):
        return response
    response.headers.setdefault("Content-Security-Policy", "default-src 'none'")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Cache-Control", "no-store, no-cache, must-revalidate")
    return response


def build_route_table() -> web.RouteTableDef:
    """Create a RouteTableDef holding every handler."""
    routes = web.RouteTableDef()
    register_health_routes(routes)
    register_metadata_routes(routes)
    register_formats_routes(routes)
    register_version_routes(routes)

    logger.debug("Routes registered:")
    for route in routes:
        logger.debug("  %s %s", getattr(route, "method", "?"), getattr(route, "path", "?"))
    return routes


def register_routes(app: web.Application) -> None:
    """Register middlewares and routes onto an aiohttp application (once per app)."""
    if app.get(_APP_KEY_ROUTES_REGISTERED):
        logger.debug("register_routes(app) skipped: routes already registered on this app")
        return
    ensure_observability(app)
    app.middlewares.append(security_headers_middleware)
    app.add_routes(build_route_table())
    app[_APP_KEY_ROUTES_REGISTERED] = True


def create_app() -> web.Application:
    """Build a ready-to-run aiohttp application."""
    app = web.Application()
    register_routes(app)
    return app
