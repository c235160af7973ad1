import json

import pytest

from mmt_backend import cli
from mmt_backend.config import AppConfig
from mmt_backend.deps import build_services as real_build_services


@pytest.fixture
def sidecar_only_services(monkeypatch):
    monkeypatch.setattr("mmt_backend.adapters.tools.proptool.locate_executable", lambda *a, **k: None)
    monkeypatch.setattr("mmt_backend.adapters.tools.exiftool.locate_executable", lambda *a, **k: None)

    async def _build_services():
        return await real_build_services(AppConfig(log_file=None))

    monkeypatch.setattr(cli, "build_services", _build_services)


def test_parse_write_arguments():
    args = cli._parse_args(["write", "a.jpg", "--title", "T", "--tags", "a; b", "--rating", "3"])
    patch = cli._patch_from_args(args)
    assert patch.title == "T"
    assert patch.tags == ["a", "b"]
    assert patch.rating == 3
    assert patch.comments is None


def test_write_read_clear_roundtrip(tmp_path, capsys, sidecar_only_services):
    media = tmp_path / "notes.txt"
    media.write_text("x", encoding="utf-8")

    assert cli.main(["write", str(media), "--title", "Hello", "--tags", "a, b"]) == 0
    written = json.loads(capsys.readouterr().out)
    assert written["data"]["title"] == "Hello"

    assert cli.main(["read", str(media)]) == 0
    read = json.loads(capsys.readouterr().out)
    assert read["data"]["tags"] == ["a", "b"]

    assert cli.main(["clear", str(media)]) == 0
    cleared = json.loads(capsys.readouterr().out)
    assert cleared["data"] == {"title": "", "comments": "", "tags": [], "rating": 0}


def test_tools_command_and_error_exit(capsys, sidecar_only_services):
    assert cli.main(["tools"]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["data"]["overall"] == "degraded"

    assert cli.main(["read", ""]) == 1
    assert json.loads(capsys.readouterr().out)["code"] == "INVALID_INPUT"
