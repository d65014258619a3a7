import io
import json
import logging

from bizgenius.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    request_context,
    request_id_var,
    setup_logging,
)


def _record(msg="hello", **extra):
    record = logging.LogRecord("bizgenius.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_request_context_sets_and_restores():
    assert request_id_var.get() == "-"
    with request_context("rid-1") as rid:
        assert rid == "rid-1"
        assert request_id_var.get() == "rid-1"
        with request_context("rid-2"):
            assert request_id_var.get() == "rid-2"
        assert request_id_var.get() == "rid-1"
    assert request_id_var.get() == "-"


def test_filter_stamps_current_request_id():
    record = _record()
    with request_context("abc"):
        assert RequestIdFilter().filter(record) is True
    assert record.request_id == "abc"

    preset = _record(request_id="kept")
    RequestIdFilter().filter(preset)
    assert preset.request_id == "kept"


def test_json_formatter_includes_access_fields():
    record = _record("request.end", request_id="r1", method="GET", path="/health", status=200, duration_ms=3)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "request.end"
    assert payload["request_id"] == "r1"
    assert payload["level"] == "INFO"
    assert (payload["method"], payload["path"], payload["status"], payload["duration_ms"]) == ("GET", "/health", 200, 3)


def test_json_formatter_omits_missing_fields():
    payload = json.loads(JsonFormatter().format(_record("plain", request_id="-")))
    assert payload["message"] == "plain"
    assert "status" not in payload


def test_setup_logging_keeps_host_handlers_and_adds_filter_once(monkeypatch):
    root = logging.getLogger()
    handler = logging.StreamHandler(io.StringIO())
    monkeypatch.setattr(root, "handlers", [handler])
    monkeypatch.setattr(root, "level", root.level)
    monkeypatch.setattr(logging.getLogger("httpx"), "level", logging.getLogger("httpx").level)
    monkeypatch.setattr(logging.getLogger("httpcore"), "level", logging.getLogger("httpcore").level)
    monkeypatch.setattr(logging.getLogger("openai"), "level", logging.getLogger("openai").level)

    setup_logging(level="info")
    setup_logging(level="info")

    assert root.handlers == [handler]
    assert sum(isinstance(f, RequestIdFilter) for f in handler.filters) == 1
    assert root.level == logging.INFO
    assert logging.getLogger("openai").level == logging.WARNING
