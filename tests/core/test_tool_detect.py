import subprocess
from pathlib import Path

import pytest

from mmt_backend import tool_detect as td


@pytest.fixture(autouse=True)
def _clear_cache():
    td.reset_tool_cache()
    yield
    td.reset_tool_cache()


def test_parse_and_compare_versions():
    assert td.parse_tool_version("12.76") == (12, 76)
    assert td.parse_tool_version("") == ()
    assert td.version_satisfies_minimum("12.76", "12.40") is True
    assert td.version_satisfies_minimum("12.4", "12.40") is False
    assert td.version_satisfies_minimum("12", "12.0") is True
    assert td.version_satisfies_minimum(None, "1") is False
    assert td.version_satisfies_minimum(None, "") is True


def test_candidate_dirs_order(tmp_path: Path):
    res = tmp_path / "resources"
    extra = tmp_path / "extra"
    dirs = td.candidate_dirs(str(res), [str(extra)])
    assert dirs[:4] == [res / "app.asar.unpacked", res, res / "app", res / "tools"]
    assert dirs[-1] == extra
    assert Path.cwd() in dirs
    assert len(dirs) == len({str(d) for d in dirs})


def test_locate_prefers_explicit_file(tmp_path: Path):
    exe = tmp_path / "custom-exiftool"
    exe.write_text("x")
    assert td.locate_executable(["exiftool"], explicit=str(exe), search_path=False) == str(exe.resolve())


def test_locate_probes_resources_before_path(tmp_path: Path, monkeypatch):
    res = tmp_path / "resources"
    (res / "app.asar.unpacked").mkdir(parents=True)
    bundled = res / "app.asar.unpacked" / "DBM.PropTool"
    bundled.write_text("x")
    (res / "DBM.PropTool").write_text("x")
    monkeypatch.setattr(td.shutil, "which", lambda name: "/usr/bin/" + name)
    assert td.locate_executable(["DBM.PropTool"], resources_dir=str(res)) == str(bundled)


def test_locate_falls_back_to_path_and_none(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(td, "candidate_dirs", lambda *a, **k: [tmp_path])
    monkeypatch.setattr(td.shutil, "which", lambda name: "/usr/bin/exiftool" if name == "exiftool" else None)
    assert td.locate_executable(["exiftool"]) == "/usr/bin/exiftool"
    assert td.locate_executable(["nope"]) is None
    assert td.locate_executable(["exiftool"], search_path=False) is None


def test_locate_ignores_unsafe_override(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(td, "candidate_dirs", lambda *a, **k: [])
    monkeypatch.setattr(td.shutil, "which", lambda name: None)
    assert td.locate_executable(["exiftool"], explicit="exiftool; rm -rf /") is None


def test_probe_version_caches(monkeypatch):
    calls = []

    def _run(cmd, timeout):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout="12.76\n", stderr="")

    monkeypatch.setattr(td, "_run_command", _run)
    assert td.probe_version("/usr/bin/exiftool") == "12.76"
    assert td.probe_version("/usr/bin/exiftool") == "12.76"
    assert calls == [["/usr/bin/exiftool", "-ver"]]


def test_probe_version_failure_is_none(monkeypatch):
    def _missing(cmd, timeout):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(td, "_run_command", _missing)
    assert td.probe_version("/nope/exiftool") is None

    monkeypatch.setattr(
        td, "_run_command", lambda cmd, timeout: subprocess.CompletedProcess(cmd, 1, stdout="", stderr="bad")
    )
    assert td.probe_version("/other/exiftool") is None
