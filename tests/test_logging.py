import json
import logging

from app.logging import JsonFormatter, PlainFormatter, mask_sensitive


def _record(msg, **extra):
    record = logging.LogRecord("wa", logging.WARNING, __file__, 1, msg, args=(), exc_info=None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_mask_sensitive_hides_secrets():
    masked = mask_sensitive("verify token=abc123 secret: s3cr3t")
    assert "abc123" not in masked
    assert "s3cr3t" not in masked
    assert "token=***" in masked


def test_json_formatter_includes_trace_id():
    line = JsonFormatter().format(_record("webhook_received channel=whatsapp", trace_id="t-42"))
    payload = json.loads(line)
    assert payload["message"] == "webhook_received channel=whatsapp"
    assert payload["level"] == "WARNING"
    assert payload["trace_id"] == "t-42"


def test_plain_formatter_appends_trace_id():
    text = PlainFormatter("%(levelname)s %(message)s").format(_record("hello", trace_id="t-7"))
    assert text == "WARNING hello trace_id=t-7"
