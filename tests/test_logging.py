"""Tests for structured logging configuration."""

import json
import logging
import sys

import pytest

from basal_tracker.logging_config import (
    JsonFormatter,
    TextFormatter,
    correlation_id_ctx,
    get_logger,
    setup_logging,
)


def _record(level=logging.INFO, msg="Test", **extra_fields):
    record = logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="/app/test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    if extra_fields:
        record.extra_fields = extra_fields
    return record


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Drop handlers installed by setup_logging so later tests log as before."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, (JsonFormatter, TextFormatter)):
            root.removeHandler(handler)
    root.setLevel(level)


class TestJsonFormatter:
    """Tests for JSON log formatting."""

    def test_json_format_basic(self):
        formatter = JsonFormatter(service_name="test-service")

        parsed = json.loads(formatter.format(_record(msg="Test message")))

        assert parsed["level"] == "INFO"
        assert parsed["service"] == "test-service"
        assert parsed["message"] == "Test message"
        assert parsed["logger"] == "test.logger"
        assert "timestamp" in parsed
        assert "correlation_id" not in parsed

    def test_json_format_with_correlation_id(self):
        formatter = JsonFormatter()

        token = correlation_id_ctx.set("test-correlation-123")
        try:
            parsed = json.loads(formatter.format(_record()))
            assert parsed["correlation_id"] == "test-correlation-123"
        finally:
            correlation_id_ctx.reset(token)

    def test_json_format_includes_extra_fields(self):
        """Decimal and other non-JSON values are rendered as strings."""
        from decimal import Decimal

        formatter = JsonFormatter()

        parsed = json.loads(
            formatter.format(_record(profile_id="abc", rate=Decimal("0.05")))
        )

        assert parsed["profile_id"] == "abc"
        assert parsed["rate"] == "0.05"

    def test_json_format_error_includes_location(self):
        formatter = JsonFormatter()
        record = _record(level=logging.ERROR, msg="Error occurred")
        record.funcName = "test_function"

        parsed = json.loads(formatter.format(record))

        assert parsed["location"]["file"] == "/app/test.py"
        assert parsed["location"]["line"] == 42
        assert parsed["location"]["function"] == "test_function"

    def test_json_format_with_exception(self):
        formatter = JsonFormatter()
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()
        record = _record(level=logging.ERROR, msg="Error")
        record.exc_info = exc_info

        parsed = json.loads(formatter.format(record))

        assert "ValueError" in parsed["exception"]


class TestTextFormatter:
    """Tests for text log formatting."""

    def test_text_format_basic(self):
        formatter = TextFormatter(service_name="test-service")

        output = formatter.format(_record(msg="Test message"))

        assert "test-service" in output
        assert "INFO" in output
        assert "Test message" in output
        assert "[-]" in output

    def test_text_format_with_correlation_id(self):
        formatter = TextFormatter()

        token = correlation_id_ctx.set("abc-123")
        try:
            assert "[abc-123]" in formatter.format(_record())
        finally:
            correlation_id_ctx.reset(token)

    def test_text_format_appends_fields(self):
        formatter = TextFormatter()

        output = formatter.format(_record(msg="Edited", operation="set_rate"))

        assert output.endswith("Edited operation=set_rate")


class TestStructuredLogger:
    """Tests for StructuredLogger wrapper."""

    def test_logger_info(self, caplog):
        logger = get_logger("test.logger")

        with caplog.at_level(logging.INFO):
            logger.info("Test info message")

        assert "Test info message" in caplog.text

    def test_logger_passes_extra_fields(self, caplog):
        logger = get_logger("test.logger")

        with caplog.at_level(logging.INFO):
            logger.info("Saved basal profile", profile_id="123", points=3)

        record = caplog.records[-1]
        assert record.extra_fields == {"profile_id": "123", "points": 3}

    def test_disabled_level_is_skipped(self, caplog):
        logger = get_logger("test.logger")

        with caplog.at_level(logging.WARNING):
            logger.debug("Too quiet", offset=0)

        assert "Too quiet" not in caplog.text

    def test_logger_exception_includes_traceback(self, caplog):
        logger = get_logger("test.logger")

        with caplog.at_level(logging.ERROR):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("Request failed", path="/x")

        record = caplog.records[-1]
        assert record.exc_info is not None
        assert record.extra_fields == {"path": "/x"}


class TestSetupLogging:
    """Tests for logging setup function."""

    def test_setup_json_logging(self):
        setup_logging(log_format="json", log_level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_setup_text_logging(self):
        setup_logging(log_format="text", log_level="INFO")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_setup_custom_service_name(self):
        setup_logging(log_format="json", service_name="custom-service")

        formatter = logging.getLogger().handlers[0].formatter
        assert isinstance(formatter, JsonFormatter)
        assert formatter.service_name == "custom-service"

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(log_level="chatty")

        assert logging.getLogger().level == logging.INFO
