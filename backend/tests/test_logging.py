"""
Tests for log formatting and correlation ids.
"""
import json
import logging

from reportsonic.core.logging import JSONFormatter, TextFormatter
import reportsonic.core.middleware  # noqa: F401  installs the correlation id record factory


def make_record(**extra):
    record = logging.LogRecord("reportsonic.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    record = make_record(correlation_id="abc-123", provider="Groq", duration=0.5)
    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "hello world"
    assert data["level"] == "INFO"
    assert data["correlation_id"] == "abc-123"
    assert data["provider"] == "Groq"
    assert data["duration"] == 0.5


def test_text_formatter_includes_correlation_id():
    record = make_record(correlation_id="abc-123")
    line = TextFormatter().format(record)

    assert "[abc-123]" in line
    assert line.endswith("hello world")


def test_records_outside_requests_get_system_correlation_id():
    record = logging.getLogger("reportsonic.test").makeRecord(
        "reportsonic.test", logging.INFO, __file__, 10, "hello", (), None
    )
    assert record.correlation_id == "system"
