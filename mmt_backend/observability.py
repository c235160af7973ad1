"""
Request-id correlation and request logging for the aiohttp app.
"""
from __future__ import annotations

import time
from typing import Any
from uuid import uuid4

from aiohttp import web

from mmt_shared import get_logger, request_id_var

from .utils import env_bool

logger = get_logger(__name__)

_APPKEY_OBS_INSTALLED = web.AppKey("mmt_observability_installed", bool)
API_PREFIX = "/mmt/"


def _get_request_id(request: web.Request) -> str:
    rid = (request.headers.get("X-Request-ID") or "").strip()
    return rid or uuid4().hex


def _should_log(path: str, status: int | None) -> bool:
    if not path.startswith(API_PREFIX):
        return False
    if env_bool("MMT_OBS_LOG_ALL", False):
        return True
    return status is not None and status >= 400


@web.middleware
async def request_context_middleware(request: web.Request, handler):
    """Add request-id correlation and log failing requests."""
    if env_bool("MMT_OBS_DISABLE", False):
        return await handler(request)

    rid = _get_request_id(request)
    request["mmt_request_id"] = rid
    token = request_id_var.set(rid)
    start = time.perf_counter()
    status: int | None = None
    try:
        response = await handler(request)
        status = int(getattr(response, "status", 200) or 200)
        try:
            response.headers["X-Request-ID"] = rid
        except Exception:
            pass
        return response
    except web.HTTPException as exc:
        status = int(getattr(exc, "status", 500) or 500)
        raise
    except Exception:
        status = 500
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000.0
        path = request.path or ""
        if _should_log(path, status):
            logger.info("%s %s -> %s (%.1fms)", request.method, path, status, duration_ms)
        request_id_var.reset(token)


def ensure_observability(app: web.Application) -> Any:
    """Install the middleware once per app."""
    if app.get(_APPKEY_OBS_INSTALLED):
        return app
    app.middlewares.insert(0, request_context_middleware)
    app[_APPKEY_OBS_INSTALLED] = True
    return app
