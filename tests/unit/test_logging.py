"""
Unit tests for the JSON log formatter
"""
import json
import logging

from saveable.core.logging import JsonFormatter


def _record(msg, **extra):
    record = logging.LogRecord("saveable.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_message_and_level():
    payload = json.loads(JsonFormatter().format(_record("save created")))

    assert payload["message"] == "save created"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "saveable.test"


def test_includes_extra_fields():
    record = _record("save created", saver=["entities.User", 1], collection_id=None)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["saver"] == ["entities.User", 1]
    assert payload["collection_id"] is None
    assert "lineno" not in payload
    assert "msg" not in payload
