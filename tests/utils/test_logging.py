"""
Unit tests for logging setup module.

This module contains tests for logging configuration, formatting,
and performance decorators.
"""

import json
import logging
import logging.handlers
import tempfile
import pytest
from pathlib import Path
import sys

from fleetgeo.utils.logging_setup import (
    setup_logging,
    setup_logging_from_config,
    get_logger,
    log_performance,
    JSONFormatter
)


def _make_record(msg="Test message", level=logging.INFO, exc_info=None):
    record = logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="/path/to/file.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info
    )
    record.funcName = "test_function"
    record.module = "test_module"
    return record


class TestJSONFormatter:
    """Test suite for JSONFormatter class."""

    def test_json_formatter_basic(self):
        """Test basic JSON formatting."""
        formatter = JSONFormatter(datefmt='%Y-%m-%d %H:%M:%S')

        parsed = json.loads(formatter.format(_make_record()))

        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "test.logger"
        assert parsed["message"] == "Test message"
        assert parsed["module"] == "test_module"
        assert parsed["function"] == "test_function"
        assert parsed["line"] == 42
        assert "timestamp" in parsed

    def test_json_formatter_with_exception(self):
        """Test JSON formatting with exception information."""
        formatter = JSONFormatter()

        try:
            raise ValueError("Test exception")
        except ValueError:
            record = _make_record("Error occurred", logging.ERROR, sys.exc_info())

        parsed = json.loads(formatter.format(record))

        assert parsed["level"] == "ERROR"
        assert "ValueError" in parsed["exception"]

    def test_json_formatter_with_extra_fields(self):
        """Test JSON formatting with extra fields."""
        formatter = JSONFormatter()
        record = _make_record()
        record.record_id = "65f0c2"
        record.point = [-34.9, -8.05]

        parsed = json.loads(formatter.format(record))

        assert parsed["record_id"] == "65f0c2"
        assert parsed["point"] == [-34.9, -8.05]

    def test_json_formatter_keeps_non_ascii(self):
        """Test accented city names are written as-is."""
        formatter = JSONFormatter()

        result = formatter.format(_make_record("Cidade: São Paulo"))

        assert "São Paulo" in result


class TestSetupLogging:
    """Test suite for setup_logging function."""

    def setup_method(self):
        """Reset logging configuration before each test."""
        logger = logging.getLogger()
        logger.handlers.clear()
        logger.setLevel(logging.WARNING)

    def teardown_method(self):
        """Close handlers opened by the test."""
        logger = logging.getLogger()
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    def test_setup_logging_development(self):
        """Test logging setup for development environment."""
        setup_logging(environment="development", log_level="DEBUG")

        logger = logging.getLogger()
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

        handler = logger.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stdout
        assert not isinstance(handler.formatter, JSONFormatter)

    def test_setup_logging_production(self):
        """Test logging setup for production environment."""
        setup_logging(environment="production", log_level="INFO")

        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, JSONFormatter)

    def test_explicit_format_overrides_environment(self):
        """Test log_format takes precedence over the environment default."""
        setup_logging(environment="development", log_format="json")
        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

        setup_logging(environment="production", log_format="standard")
        assert not isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    def test_setup_logging_with_log_dir(self):
        """Test logging setup with log directory."""
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_logging(environment="development", log_level="INFO", log_dir=temp_dir)

            logger = logging.getLogger()
            assert len(logger.handlers) == 2  # Console + File

            file_handlers = [h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
            assert len(file_handlers) == 1
            assert (Path(temp_dir) / "fleetgeo_development.log").exists()

            for handler in file_handlers:
                handler.close()

    def test_setup_logging_removes_existing_handlers(self):
        """Test that setup_logging removes existing handlers."""
        logger = logging.getLogger()
        dummy_handler = logging.StreamHandler()
        logger.addHandler(dummy_handler)

        setup_logging(environment="development")

        assert len(logger.handlers) == 1
        assert logger.handlers[0] is not dummy_handler

    def test_setup_logging_sets_third_party_levels(self):
        """Test that setup_logging quiets the MongoDB driver loggers."""
        setup_logging(environment="development", log_level="DEBUG")

        assert logging.getLogger("pymongo").level == logging.WARNING
        assert logging.getLogger("pymongo.serverSelection").level == logging.WARNING

    def test_setup_logging_invalid_level(self):
        """Test that setup_logging rejects invalid log levels."""
        with pytest.raises(AttributeError):
            setup_logging(environment="development", log_level="INVALID")

    def test_setup_logging_from_config(self):
        """Test the logging block of an environment config is applied."""
        env_config = {"logging": {"level": "WARNING", "format": "json"}}

        setup_logging_from_config(env_config, "development")

        logger = logging.getLogger()
        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_setup_logging_from_config_level_override(self):
        """Test an explicit level beats the configured one."""
        setup_logging_from_config({"logging": {"level": "WARNING"}}, "development", log_level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG


class TestGetLogger:
    """Test suite for get_logger function."""

    def test_get_logger_returns_logger(self):
        """Test that get_logger returns a logger instance."""
        logger = get_logger("test.module")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "test.module"


class TestLogPerformance:
    """Test suite for log_performance decorator."""

    def test_log_performance_success(self, caplog):
        """Test the decorator logs start and completion and returns the result."""
        @log_performance
        def add(a, b):
            return a + b

        with caplog.at_level(logging.INFO):
            assert add(2, 3) == 5

        messages = [r.getMessage() for r in caplog.records]
        assert "Starting add" in messages
        assert any(m.startswith("Completed add in") for m in messages)

    def test_log_performance_failure(self, caplog):
        """Test the decorator logs the failure and re-raises."""
        @log_performance
        def explode():
            raise RuntimeError("boom")

        with caplog.at_level(logging.INFO):
            with pytest.raises(RuntimeError, match="boom"):
                explode()

        assert any("Failed explode" in r.getMessage() and "boom" in r.getMessage()
                   for r in caplog.records)

    def test_log_performance_preserves_metadata(self):
        """Test functools.wraps keeps the wrapped function's name and docstring."""
        @log_performance
        def documented():
            """Docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring."
