"""
Tests for log formatting and context propagation.

Run with: pytest test_logging_config.py -v
"""

import json
import logging

from logging_config import (
    DevelopmentFormatter,
    JSONFormatter,
    get_logger,
    room_code_var,
)


def make_record(message: str = "hello", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord("test", level, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))
        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert "source" not in data

    def test_record_extras(self):
        data = json.loads(JSONFormatter().format(make_record(room_code="ABCD", player_id="p1")))
        assert data["room_code"] == "ABCD"
        assert data["player_id"] == "p1"

    def test_context_variable(self):
        token = room_code_var.set("WXYZ")
        try:
            data = json.loads(JSONFormatter().format(make_record()))
        finally:
            room_code_var.reset(token)
        assert data["room_code"] == "WXYZ"

    def test_errors_include_source(self):
        data = json.loads(JSONFormatter().format(make_record(level=logging.ERROR)))
        assert data["source"]["line"] == 10


class TestDevelopmentFormatter:

    def test_includes_room(self):
        output = DevelopmentFormatter().format(make_record(room_code="ABCD"))
        assert "room=ABCD" in output
        assert output.endswith("hello")


class TestContextLogger:

    def test_with_context_merges_extra(self, caplog):
        logger = get_logger("uno.test").with_context(room_code="ABCD")
        with caplog.at_level(logging.INFO, logger="uno.test"):
            logger.with_context(player_id="p1").info("joined")

        record = caplog.records[-1]
        assert record.room_code == "ABCD"
        assert record.player_id == "p1"
