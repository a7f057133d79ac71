"""
Unit tests for structured log formatting
"""
import json
import logging

from trip_planner.core.logging import JsonFormatter


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("trip_planner.test", logging.WARNING, __file__, 1, "write %s failed", ("k",), None)
    record.__dict__.update(extra)
    return record


def test_json_formatter_fields():
    payload = json.loads(JsonFormatter().format(make_record()))

    assert payload["level"] == "WARNING"
    assert payload["message"] == "write k failed"
    assert payload["logger"] == "trip_planner.test"
    assert "time" in payload


def test_json_formatter_includes_extra_fields():
    payload = json.loads(JsonFormatter().format(make_record(namespace_key="tripplanner:data:u", attempt=2)))

    assert payload["namespace_key"] == "tripplanner:data:u"
    assert payload["attempt"] == 2
    assert "args" not in payload
