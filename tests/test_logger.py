"""Tests for structured logging."""
import json
import logging

from radio_api.utils.logger import JSONFormatter, RequestContextFilter


def _record(**extra):
    record = logging.LogRecord("radio_api.test", logging.WARNING, __file__, 1, "Activity log write failed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    formatter = JSONFormatter(service="Radio Platform API")

    payload = json.loads(formatter.format(_record(action="delete", log_id=7)))

    assert payload["message"] == "Activity log write failed"
    assert payload["level"] == "WARNING"
    assert payload["service"] == "Radio Platform API"
    assert payload["action"] == "delete"
    assert payload["log_id"] == 7


def test_context_filter_adds_request_context():
    context = RequestContextFilter()
    context.set_context(request_id="abc-123", client_ip="203.0.113.5")
    try:
        record = _record(client_ip="10.0.0.1")
        assert context.filter(record)
        assert record.request_id == "abc-123"
        # Explicit extra values are kept
        assert record.client_ip == "10.0.0.1"
    finally:
        context.clear_context()

    record = _record()
    context.filter(record)
    assert not hasattr(record, "request_id")
