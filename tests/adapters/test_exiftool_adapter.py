import json
import subprocess
from pathlib import Path

import pytest

from mmt_backend.adapters.tools import exiftool as m
from mmt_backend.features.metadata.record import MetadataRecord
from mmt_shared import ErrorCode


def _mk_completed(returncode=0, stdout=b"", stderr=b""):
    return subprocess.CompletedProcess(args=["x"], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def ex(monkeypatch):
    monkeypatch.setattr(m, "locate_executable", lambda *a, **k: "/usr/bin/exiftool")
    monkeypatch.setattr(m, "probe_version", lambda *a, **k: "12.76")
    return m.ExifTool(timeout=1.0, min_version="")


@pytest.fixture
def media(tmp_path: Path) -> Path:
    p = tmp_path / "IMG_1.heic"
    p.write_bytes(b"\x00")
    return p


def test_tag_validation_helper():
    assert m._is_safe_exiftool_tag("XMP:Rating") is True
    assert m._is_safe_exiftool_tag("XMP-dc:Subject") is True
    assert m._is_safe_exiftool_tag("-bad") is False
    assert m._is_safe_exiftool_tag("bad tag") is False
    assert m._is_safe_exiftool_tag("") is False


def test_build_write_payload_field_mapping():
    rec = MetadataRecord(title="T", comments="C", tags=["a", "b"], rating=4)
    payload = m.build_write_payload(rec)
    assert list(payload) == [
        "Title", "XMP-dc:Title", "XMP-dc:Description", "Description", "Comment", "Subject",
        "Keywords", "XMP-dc:Subject", "XMP:Rating",
    ]
    assert payload["Keywords"] == ["a", "b"]
    assert payload["XMP:Rating"] == 4
    assert set(m.build_write_payload(rec, {"tags"})) == {"Keywords", "XMP-dc:Subject"}


def test_build_clear_payload_blanks_everything():
    payload = m.build_clear_payload()
    assert payload["Title"] is None
    assert payload["XMP:Rating"] is None
    assert payload["Keywords"] == []


def test_write_command_clears_then_adds_lists(ex):
    payload = m.build_write_payload(MetadataRecord(title="Sun set", comments="line1\nline2", tags=["a", "b"], rating=2))
    cmd, stdin_input = ex.build_write_command("/p/x.heic", payload)
    assert stdin_input is None
    assert cmd[:4] == ["/usr/bin/exiftool", "-overwrite_original", "-m", "-P"]
    assert "-Title=Sun set" in cmd
    assert "-Comment=line1 line2" in cmd
    kw = cmd.index("-Keywords=")
    assert cmd[kw + 1:kw + 3] == ["-Keywords+=a", "-Keywords+=b"]
    assert "-XMP:Rating=2" in cmd
    assert cmd[-1] == "/p/x.heic"


def test_clear_command_assigns_empty(ex):
    cmd, _ = ex.build_write_command("/p/x.pdf", m.build_clear_payload())
    assert "-Title=" in cmd and "-XMP:Rating=" in cmd and "-Keywords=" in cmd
    assert not any(arg.startswith("-Keywords+=") for arg in cmd)


def test_read_command_includes_tags_and_path(ex):
    cmd, _ = ex.build_read_command("/p/x.wav")
    assert cmd[:5] == ["/usr/bin/exiftool", "-json", "-G1", "-a", "-s"]
    for tag in m.READ_TAGS:
        assert f"-{tag}" in cmd
    assert cmd[-1] == "/p/x.wav"


def test_windows_uses_argfile_for_path(monkeypatch, ex):
    monkeypatch.setattr(m.os, "name", "nt")
    cmd, stdin_input = ex.build_read_command("C:\\Fotos\\été.heic")
    assert cmd[-4:] == ["-charset", "filename=utf8", "-@", "-"]
    assert stdin_input == "C:\\Fotos\\été.heic\r\n".encode("utf-8")


def test_record_from_exiftool_output_groups():
    rec = m.record_from_exiftool_output(
        {
            "SourceFile": "/p/x.heic",
            "XMP-dc:Title": "Beach",
            "IPTC:Keywords": ["sun", "Sea"],
            "XMP-dc:Subject": ["sea", "sand"],
            "XMP-dc:Description": "desc",
            "XMP-xmp:Rating": 4,
        }
    )
    assert rec.to_dict() == {"title": "Beach", "comments": "desc", "tags": ["sun", "Sea", "sand"], "rating": 4}


def test_record_from_exiftool_output_comment_precedence():
    rec = m.record_from_exiftool_output({"ExifIFD:Comment": "c", "IFD0:Description": "d"})
    assert rec.comments == "c"
    rec = m.record_from_exiftool_output({"PDF:Subject": "about"})
    assert rec.comments == "about"
    assert rec.tags == []
    assert m.record_from_exiftool_output({}).is_empty()


def test_get_parses_single_element_array(monkeypatch, ex, media):
    out = json.dumps([{"SourceFile": str(media), "XMP-dc:Title": "T", "XMP-xmp:Rating": 9}]).encode()
    monkeypatch.setattr(m, "run_tool", lambda cmd, **k: _mk_completed(stdout=out))
    res = ex.get(str(media))
    assert res.ok
    assert res.data.title == "T"
    assert res.data.rating == 5


@pytest.mark.parametrize(
    "completed, code",
    [
        (_mk_completed(returncode=1, stderr=b"Error: File not found"), ErrorCode.ADAPTER_FAILED),
        (_mk_completed(stdout=b""), ErrorCode.PARSE_ERROR),
        (_mk_completed(stdout=b"not json"), ErrorCode.PARSE_ERROR),
        (_mk_completed(stdout=b"[]"), ErrorCode.PARSE_ERROR),
    ],
)
def test_get_failures(monkeypatch, ex, media, completed, code):
    monkeypatch.setattr(m, "run_tool", lambda cmd, **k: completed)
    res = ex.get(str(media))
    assert not res.ok
    assert res.code == code.value


def test_get_timeout(monkeypatch, ex, media):
    def _timeout(cmd, **k):
        raise subprocess.TimeoutExpired(cmd, 1.0)

    monkeypatch.setattr(m, "run_tool", _timeout)
    assert ex.get(str(media)).code == ErrorCode.TIMEOUT.value


def test_set_runs_write_command(monkeypatch, ex, media):
    seen = {}

    def _run(cmd, **k):
        seen["cmd"] = cmd
        return _mk_completed(stdout=b"    1 image files updated")

    monkeypatch.setattr(m, "run_tool", _run)
    res = ex.set(str(media), MetadataRecord(title="T", tags=["k"]))
    assert res.ok
    assert "-XMP-dc:Subject+=k" in seen["cmd"]


def test_write_missing_file_and_bad_keys(monkeypatch, ex, tmp_path: Path, media):
    monkeypatch.setattr(m, "run_tool", lambda cmd, **k: pytest.fail("should not run"))
    assert ex.write(str(tmp_path / "missing.heic"), {"Title": "x"}).code == ErrorCode.NOT_FOUND.value
    bad = ex.write(str(media), {"bad tag": "x"})
    assert bad.code == ErrorCode.INVALID_INPUT.value
    assert bad.meta["invalid_tags"] == ["bad tag"]


def test_write_failure_exit(monkeypatch, ex, media):
    monkeypatch.setattr(m, "run_tool", lambda cmd, **k: _mk_completed(returncode=1, stderr=b"Error: read-only"))
    res = ex.clear(str(media))
    assert not res.ok
    assert res.code == ErrorCode.ADAPTER_FAILED.value


def test_unavailable_and_min_version(monkeypatch):
    monkeypatch.setattr(m, "locate_executable", lambda *a, **k: None)
    missing = m.ExifTool()
    assert missing.is_available() is False
    assert missing.get("/p/x.heic").code == ErrorCode.TOOL_MISSING.value

    monkeypatch.setattr(m, "locate_executable", lambda *a, **k: "/usr/bin/exiftool")
    monkeypatch.setattr(m, "probe_version", lambda *a, **k: "11.80")
    old = m.ExifTool(min_version="12.0")
    assert old.is_available() is False
    assert old.version == "11.80"


def test_availability_is_probed_once(monkeypatch):
    calls = []
    monkeypatch.setattr(m, "locate_executable", lambda *a, **k: "/usr/bin/exiftool")

    def _probe(*a, **k):
        calls.append(a)
        return "12.76"

    monkeypatch.setattr(m, "probe_version", _probe)
    tool = m.ExifTool(min_version="")
    assert tool.is_available() and tool.is_available()
    assert len(calls) == 1


def test_still_payload_adds_explorer_fields():
    rec = MetadataRecord(title="T", comments="C", tags=["a", "b"], rating=1)
    payload = m.build_write_payload(rec, kind="image")
    assert payload["XPTitle"] == "T"
    assert payload["XPComment"] == "C" and payload["UserComment"] == "C"
    assert payload["XPKeywords"] == "a; b"
    assert "QuickTime:Title" not in payload


def test_video_payload_adds_quicktime_fields():
    rec = MetadataRecord(title="Clip", comments="C", tags=["a"])
    payload = m.build_write_payload(rec, kind="video")
    assert payload["QuickTime:Title"] == "Clip"
    assert payload["QuickTime:Comment"] == "C"
    assert payload["XPKeywords"] == "a"
    assert "XPTitle" not in payload


def test_document_payload_has_no_explorer_fields():
    payload = m.build_write_payload(MetadataRecord(title="T", tags=["a"]), kind="document")
    assert not any(key.startswith(("XP", "QuickTime")) for key in payload)


def test_clear_payload_per_kind():
    still = m.build_clear_payload("image")
    assert still["XPTitle"] is None and still["XPKeywords"] is None and still["UserComment"] is None
    video = m.build_clear_payload("video")
    assert video["QuickTime:Title"] is None and video["QuickTime:Comment"] is None


def test_record_from_exiftool_output_reads_explorer_fields():
    rec = m.record_from_exiftool_output(
        {"IFD0:XPTitle": "Win title", "IFD0:XPKeywords": "one;Two", "XMP-dc:Subject": ["two", "three"]},
        "image",
    )
    assert rec.title == "Win title"
    assert rec.tags == ["one", "Two", "three"]
    rec = m.record_from_exiftool_output({"ExifIFD:UserComment": "from camera"}, "image")
    assert rec.comments == "from camera"


def test_record_from_exiftool_output_video_prefers_quicktime():
    data = {"XMP-dc:Title": "xmp", "ItemList:Title": "qt", "XMP-x:Comment": "xc", "ItemList:Comment": "qc"}
    rec = m.record_from_exiftool_output(data, "video")
    assert rec.title == "qt"
    assert rec.comments == "qc"
    assert m.record_from_exiftool_output(data, "image").title == "xmp"


def test_set_on_still_writes_xp_fields(monkeypatch, ex, media):
    seen = {}

    def _run(cmd, **k):
        seen["cmd"] = cmd
        return _mk_completed()

    monkeypatch.setattr(m, "run_tool", _run)
    assert ex.set(str(media), MetadataRecord(title="T", tags=["k", "j"])).ok
    assert "-XPTitle=T" in seen["cmd"]
    assert "-XPKeywords=k; j" in seen["cmd"]
    assert ex.clear(str(media)).ok
    assert "-XPKeywords=" in seen["cmd"] and "-XPComment=" in seen["cmd"]


def test_version_check_uses_configured_timeout(monkeypatch):
    seen = {}
    monkeypatch.setattr(m, "locate_executable", lambda *a, **k: "/usr/bin/exiftool")

    def _probe(exe, flag, timeout=None):
        seen["timeout"] = timeout
        return "12.76"

    monkeypatch.setattr(m, "probe_version", _probe)
    assert m.ExifTool(min_version="", probe_timeout=2.5).is_available()
    assert seen["timeout"] == 2.5
