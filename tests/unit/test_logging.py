"""
Unit tests for logging module.
"""

import logging

import pytest

from memory_bank_server.core.logging import (
    MemoryBankFormatter,
    StructuredLogger,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers, level = root_logger.handlers[:], root_logger.level
    yield
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(level)


def make_record(level=logging.INFO, msg="Test message", exc_info=None):
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestMemoryBankFormatter:
    """Test custom formatter."""

    def test_format_basic_log(self):
        """Test basic log formatting."""
        result = MemoryBankFormatter().format(make_record())
        assert "ℹ️" in result
        assert "Test message" in result

    def test_format_with_extra_data(self):
        """Test formatting with extra data."""
        record = make_record()
        record.extra_data = {"target": "progress.md", "stage": "authorized"}
        result = MemoryBankFormatter().format(record)
        assert "target=progress.md" in result
        assert "stage=authorized" in result

    def test_format_with_exception(self):
        try:
            raise OSError("disk full")
        except OSError:
            import sys

            record = make_record(logging.ERROR, "Write failed", sys.exc_info())

        result = MemoryBankFormatter().format(record)
        assert "❌" in result
        assert "OSError: disk full" in result


class TestStructuredLogger:
    """Test structured logger."""

    def test_logger_creation(self):
        """Test logger creation."""
        logger = StructuredLogger("test_logger")
        assert logger.logger.name == "test_logger"

    def test_extra_data_attached(self, caplog):
        logger = StructuredLogger("test_structured")
        with caplog.at_level(logging.INFO, logger="test_structured"):
            logger.info("Denied write", target="progress.md")

        assert caplog.records[0].extra_data == {"target": "progress.md"}

    def test_disabled_level_is_skipped(self, caplog):
        logger = StructuredLogger("test_quiet", level="WARNING")
        with caplog.at_level(logging.DEBUG):
            logger.debug("Not shown", key="value")
        assert not [r for r in caplog.records if r.name == "test_quiet"]

    def test_error_logging(self):
        """Test error level logging."""
        logger = StructuredLogger("test_logger")
        # Just ensure it doesn't throw
        logger.error("Test error", error_code=500)

    def test_warning_logging(self):
        """Test warning level logging."""
        logger = StructuredLogger("test_logger")
        logger.warning("Test warning", warning_type="validation")

    def test_critical_logging(self):
        """Test critical level logging."""
        logger = StructuredLogger("test_logger")
        logger.critical("Test critical", severity="high")


class TestLoggingSetup:
    """Test logging setup functions."""

    def test_get_logger(self):
        """Test getting a logger."""
        logger = get_logger("test_module")
        assert isinstance(logger, StructuredLogger)

    def test_setup_logging_basic(self):
        """Test basic logging setup."""
        setup_logging("INFO")
        root_logger = logging.getLogger()
        assert root_logger.level == logging.INFO
        assert isinstance(root_logger.handlers[0].formatter, MemoryBankFormatter)

    def test_setup_logging_with_file(self, tmp_path):
        """Test logging setup with file."""
        log_file = tmp_path / "logs" / "server.log"
        setup_logging("DEBUG", log_file)

        logging.getLogger("test").info("Test log message")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "Test log message" in log_file.read_text()

    def test_setup_logging_levels(self):
        """Test different log levels."""
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            setup_logging(level)
            root_logger = logging.getLogger()
            assert root_logger.level == getattr(logging, level)
