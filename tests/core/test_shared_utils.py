import json
import logging
from pathlib import Path

import pytest

from mmt_shared import (
    ErrorCode,
    Result,
    classify_file,
    file_dialog_filters,
    file_extension,
    get_logger,
    sanitize_error_message,
    supported_extensions,
    timer,
    utc_iso,
)
from mmt_shared import log as log_mod
from mmt_shared.version import DIST_NAME, get_version_info


def test_result_ok_err_helpers():
    ok = Result.Ok({"a": 1}, source="test")
    assert ok.ok and ok.code == "OK" and ok.meta == {"source": "test"}
    assert ok.unwrap() == {"a": 1}

    err = Result.Err(ErrorCode.TOOL_MISSING, "missing")
    assert err.code == "TOOL_MISSING"
    assert err.unwrap_or("fallback") == "fallback"
    with pytest.raises(ValueError):
        err.unwrap()
    assert Result.Ok(2).map(lambda v: v * 3).data == 6


def test_get_logger_namespaces_under_mmt():
    logger = get_logger("mmt_backend.features.metadata.resolver")
    assert logger.name == "mmt.features.metadata.resolver"
    assert get_logger("__main__").name == "mmt.main"


def test_emoji_formatter_includes_request_id():
    record = logging.LogRecord("mmt.x", logging.WARNING, __file__, 1, "hello", None, None)
    record.request_id = "abc123"
    text = log_mod.EmojiFormatter().format(record)
    assert "MMT" in text and "[abc123]" in text and "hello" in text


def test_log_structured_emits_json(monkeypatch):
    captured = []

    class _Logger:
        def log(self, level, message):
            captured.append((level, message))

    log_mod.log_structured(_Logger(), logging.INFO, "write", path="/a.jpg")
    level, message = captured[0]
    payload = json.loads(message)
    assert level == logging.INFO
    assert payload["message"] == "write"
    assert payload["context"] == {"path": "/a.jpg"}


def test_attach_file_handler_is_idempotent(tmp_path: Path):
    target = tmp_path / "logs" / "app-2026-01-01.log"
    root = logging.getLogger(log_mod.ROOT_LOGGER_NAME)
    handler = log_mod.attach_file_handler(target)
    try:
        assert handler is not None
        assert log_mod.attach_file_handler(target) is handler
        get_logger("mmt_backend.tests").warning("to file")
        handler.flush()
        assert "to file" in target.read_text(encoding="utf-8")
    finally:
        root.removeHandler(handler)
        handler.close()


def test_sanitize_error_message_masks_paths():
    msg = sanitize_error_message(RuntimeError("cannot open /home/user/secret.jpg"), "Metadata read failed")
    assert msg.startswith("Metadata read failed: ")
    assert "/home/user" not in msg
    assert sanitize_error_message(None, "fallback") == "fallback"


def test_sanitize_error_message_keeps_file_name_and_strips_tool_prefixes():
    stderr = (
        "Error: File not found - C:\\Fotos\\IMG_1.heic\n"
        "Warning: [minor] Ignored empty rdf:Bag list\n"
        "Error: File not found - C:\\Fotos\\IMG_1.heic\n"
    )
    msg = sanitize_error_message(stderr, "Metadata write failed")
    assert msg == "Metadata write failed: File not found - [path]/IMG_1.heic; [minor] Ignored empty rdf:Bag list"
    assert sanitize_error_message("Error:   \n", "fallback") == "fallback"
    assert len(sanitize_error_message("x" * 500, "F")) == len("F: ") + 200


def test_timer_logs_elapsed_at_debug():
    captured = []

    class _Logger:
        def debug(self, msg, *args):
            captured.append(msg % args)

    with timer("shell get", _Logger()):
        pass
    assert captured[0].startswith("shell get took ")


def test_file_kind_helpers():
    assert file_extension("A.JPG") == ".jpg"
    assert classify_file("x.heic") == "image"
    assert classify_file("x.mp3") == "audio"
    assert classify_file("x.pdf") == "document"
    assert classify_file("x.zzz") == "unknown"
    assert ".txt" in supported_extensions()
    names = [f["name"] for f in file_dialog_filters()]
    assert names[0] == "All Supported" and names[-1] == "All Files"
    assert "Images" in names and "Docs" in names


def test_utc_iso_format():
    assert utc_iso(0) == "1970-01-01T00:00:00.000Z"


def test_version_info_shape():
    info = get_version_info()
    assert info["name"] == DIST_NAME
    assert info["version"]
