import json

import pytest
from aiohttp import web
from aiohttp.test_utils import make_mocked_request

from mmt_backend.features.metadata.record import MetadataPatch, MetadataRecord
from mmt_backend.routes.handlers import metadata as m
from mmt_shared import Result


class _Resolver:
    def __init__(self):
        self.calls = []

    async def aread(self, path):
        self.calls.append(("read", path))
        return Result.Ok(MetadataRecord(title="T"), stores=[])

    async def awrite(self, path, patch):
        self.calls.append(("write", path, patch))
        return Result.Ok(patch.apply_to(None), stores=[])

    async def aclear(self, path):
        self.calls.append(("clear", path))
        return Result.Ok(MetadataRecord(), stores=[])


def _build_app() -> web.Application:
    app = web.Application()
    routes = web.RouteTableDef()
    m.register_metadata_routes(routes)
    app.add_routes(routes)
    return app


async def _call(app, method, path):
    req = make_mocked_request(method, path, app=app)
    match = await app.router.resolve(req)
    resp = await match.handler(req)
    return json.loads(resp.text)


@pytest.fixture
def resolver(monkeypatch):
    svc = _Resolver()

    async def _require_services():
        return {"metadata": svc}, None

    monkeypatch.setattr(m, "_require_services", _require_services)
    return svc


def _body(monkeypatch, payload):
    async def _read_json(_request):
        return Result.Ok(payload)

    monkeypatch.setattr(m, "_read_json", _read_json)


@pytest.mark.asyncio
async def test_read_route_returns_record(monkeypatch, resolver):
    _body(monkeypatch, {"path": "/m/a.jpg"})
    body = await _call(_build_app(), "POST", "/mmt/metadata/read")
    assert body["ok"] is True
    assert body["data"] == {"title": "T", "comments": "", "tags": [], "rating": 0}
    assert resolver.calls == [("read", "/m/a.jpg")]


@pytest.mark.asyncio
async def test_write_route_merges_tag_aliases(monkeypatch, resolver):
    _body(monkeypatch, {"path": "/m/a.jpg", "title": "T", "windowsTags": "a; b", "macTags": ["B", "c"], "rating": 9})
    body = await _call(_build_app(), "POST", "/mmt/metadata/write")
    assert body["ok"] is True
    _, path, patch = resolver.calls[0]
    assert path == "/m/a.jpg"
    assert isinstance(patch, MetadataPatch)
    assert patch.tags == ["a", "b", "c"]
    assert patch.comments is None
    assert body["data"]["rating"] == 5


@pytest.mark.asyncio
async def test_write_route_accepts_nested_metadata(monkeypatch, resolver):
    _body(monkeypatch, {"path": "/m/a.jpg", "metadata": {"comments": "hi"}})
    body = await _call(_build_app(), "POST", "/mmt/metadata/write")
    assert body["data"]["comments"] == "hi"
    assert resolver.calls[0][2].supplied() == {"comments"}


@pytest.mark.asyncio
async def test_clear_route(monkeypatch, resolver):
    _body(monkeypatch, {"path": "/m/notes.txt"})
    body = await _call(_build_app(), "POST", "/mmt/metadata/clear")
    assert body["ok"] is True
    assert resolver.calls == [("clear", "/m/notes.txt")]


@pytest.mark.asyncio
async def test_missing_path_is_invalid_input(monkeypatch, resolver):
    _body(monkeypatch, {"title": "x"})
    body = await _call(_build_app(), "POST", "/mmt/metadata/write")
    assert body["code"] == "INVALID_INPUT"
    assert resolver.calls == []


@pytest.mark.asyncio
async def test_invalid_json_is_reported(monkeypatch, resolver):
    async def _read_json(_request):
        return Result.Err("INVALID_JSON", "Invalid JSON body")

    monkeypatch.setattr(m, "_read_json", _read_json)
    body = await _call(_build_app(), "POST", "/mmt/metadata/read")
    assert body["code"] == "INVALID_JSON"


@pytest.mark.asyncio
async def test_service_unavailable(monkeypatch):
    async def _require_services():
        return None, Result.Err("SERVICE_UNAVAILABLE", "down")

    monkeypatch.setattr(m, "_require_services", _require_services)
    body = await _call(_build_app(), "POST", "/mmt/metadata/read")
    assert body["code"] == "SERVICE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_unexpected_exception_is_sanitized(monkeypatch):
    class _Broken:
        async def aread(self, path):
            raise RuntimeError(f"cannot stat {path}")

    async def _require_services():
        return {"metadata": _Broken()}, None

    monkeypatch.setattr(m, "_require_services", _require_services)
    _body(monkeypatch, {"path": "/secret/dir/a.jpg"})
    body = await _call(_build_app(), "POST", "/mmt/metadata/read")
    assert body["ok"] is False
    assert "/secret/dir" not in body["error"]
