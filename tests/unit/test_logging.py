"""Unit tests for logging configuration."""

import logging

import pytest

from tokenminter.utils.exceptions import InsufficientBalanceError
from tokenminter.utils.logging import get_logger, log_rejection, log_with_context, setup_logging


class TestLoggingSetup:
    """Test cases for logging setup."""

    def test_setup_logging_default_level(self) -> None:
        """Test setup_logging with default INFO level."""
        setup_logging()
        logger = logging.getLogger("test")

        assert logger.getEffectiveLevel() == logging.INFO

    def test_setup_logging_debug_level(self) -> None:
        """Test setup_logging with DEBUG level."""
        setup_logging(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_lowercase_level(self) -> None:
        """Test level names are case-insensitive."""
        setup_logging(level="warning")
        assert logging.getLogger().level == logging.WARNING

    def test_setup_logging_custom_format(self) -> None:
        """Test setup_logging accepts custom format without error."""
        setup_logging(level="INFO", log_format="%(levelname)s - %(message)s")
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_invalid_level_fallback(self) -> None:
        """Test setup_logging with invalid level falls back to INFO."""
        setup_logging(level="INVALID")
        assert logging.getLogger().level == logging.INFO


class TestGetLogger:
    """Test cases for get_logger function."""

    def test_get_logger_name(self) -> None:
        """Test get_logger creates logger with correct name."""
        logger = get_logger("tokenminter.test_module")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "tokenminter.test_module"

    def test_get_logger_same_instance(self) -> None:
        """Test get_logger returns same instance for same name."""
        assert get_logger("test_same") is get_logger("test_same")


class TestLogWithContext:
    """Test cases for log_with_context function."""

    def test_log_with_context_info(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test logging info message with context."""
        logger = get_logger("test_context")

        with caplog.at_level(logging.INFO, logger="test_context"):
            log_with_context(logger, "info", "Transfer committed", asset=1, amount=5)

        assert len(caplog.records) == 1
        message = caplog.records[0].message
        assert message == "Transfer committed | asset=1 amount=5"

    def test_log_with_context_no_context(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test logging message without context fields."""
        logger = get_logger("test_no_context")

        with caplog.at_level(logging.INFO, logger="test_no_context"):
            log_with_context(logger, "info", "Simple message")

        assert caplog.records[0].message == "Simple message"
        assert " | " not in caplog.records[0].message


class TestLogRejection:
    """Test cases for log_rejection function."""

    def test_logs_warning_with_error_name(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test rejections are logged at WARNING with the error class."""
        logger = get_logger("test_rejection")
        error = InsufficientBalanceError("need 5, have 3")

        with caplog.at_level(logging.WARNING, logger="test_rejection"):
            log_rejection(logger, "transfer", error, asset=7)

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.levelno == logging.WARNING
        assert record.message.startswith("transfer rejected: need 5, have 3")
        assert "error=InsufficientBalanceError" in record.message
        assert "asset=7" in record.message
