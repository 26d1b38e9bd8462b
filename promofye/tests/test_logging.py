import json
import logging

from promofye.core.logging import (
    JsonFormatter,
    PrettyFormatter,
    latency_bucket_ms,
    log_event,
    request_id_ctx_var,
)


def _record(**extra):
    record = logging.LogRecord("promofye", logging.INFO, __file__, 1, "usage.logged", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context():
    line = JsonFormatter().format(_record(request_id="rid-1", user_id="u-1", action_type="scene", prompt="x"))
    payload = json.loads(line)
    assert payload["message"] == "usage.logged"
    assert payload["request_id"] == "rid-1"
    assert payload["user_id"] == "u-1"
    assert payload["action_type"] == "scene"
    assert "prompt" not in payload


def test_pretty_formatter_tags_request_and_user():
    line = PrettyFormatter().format(_record(request_id="rid-2", user_id="u-2", status=402))
    assert "usage.logged [rid=rid-2] [user=u-2] status=402" in line


def test_latency_buckets():
    assert latency_bucket_ms(None) == "unknown"
    assert latency_bucket_ms(5) == "<10ms"
    assert latency_bucket_ms(250) == "100-500ms"
    assert latency_bucket_ms(2500) == ">=1000ms"


def test_log_event_uses_context_request_id_and_truncates(caplog):
    token = request_id_ctx_var.set("rid-ctx")
    try:
        with caplog.at_level(logging.INFO, logger="promofye"):
            log_event("warning", "generation.failed", user_id="u-3", extra={"error": "e" * 600})
    finally:
        request_id_ctx_var.reset(token)

    record = next(r for r in caplog.records if r.getMessage() == "generation.failed")
    assert record.levelname == "WARNING"
    assert record.request_id == "rid-ctx"
    assert record.user_id == "u-3"
    assert record.error.endswith("...<truncated>")
    assert len(record.error) == 500 + len("...<truncated>")
