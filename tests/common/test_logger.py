"""Tests for logging utilities."""

import logging

from common.logger import error, get_logger, success, warning


class TestGetLogger:
    """Tests for get_logger function."""

    def test_returns_logger_instance(self):
        """Test that get_logger returns a logger instance."""
        logger = get_logger("test")
        assert isinstance(logger, logging.Logger)

    def test_logger_name(self):
        """Test that logger has correct name."""
        logger = get_logger("test.module")
        assert logger.name == "test.module"

    def test_default_level_is_info(self, monkeypatch):
        """Test that default logging level is INFO."""
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        logger = get_logger("test.default")
        assert logger.level == logging.INFO

    def test_level_from_environment(self, monkeypatch):
        """Test that LOG_LEVEL is used when no level is given."""
        monkeypatch.setenv("LOG_LEVEL", "warning")
        logger = get_logger("test.env_level")
        assert logger.level == logging.WARNING

    def test_custom_level(self):
        """Test that custom logging level can be set."""
        logger = get_logger("test.custom", level="debug")
        assert logger.level == logging.DEBUG

    def test_reuses_existing_logger(self):
        """Test that get_logger reuses existing logger instance."""
        logger1 = get_logger("test.reuse")
        logger2 = get_logger("test.reuse")
        assert logger1 is logger2
        # Should not add duplicate handlers
        assert len(logger1.handlers) == 1

    def test_logging_output(self, caplog):
        """Test that messages propagate to caplog."""
        logger = get_logger("test.output")

        with caplog.at_level(logging.INFO):
            logger.info("Processing batch 1/2 (10 items)...")

        assert "Processing batch 1/2" in caplog.text

    def test_info_level_filters_debug(self, caplog):
        """Test that INFO level filters out DEBUG messages."""
        logger = get_logger("test.filter", level="INFO")

        with caplog.at_level(logging.DEBUG):
            logger.debug("This should not appear")
            logger.info("This should appear")

        assert "This should not appear" not in caplog.text
        assert "This should appear" in caplog.text


class TestConsoleHelpers:
    """Tests for success/warning/error helpers."""

    def test_success_prints_message(self, capsys):
        success("Extraction complete")
        assert "Extraction complete" in capsys.readouterr().out

    def test_warning_prints_message(self, capsys):
        warning("No new items")
        assert "No new items" in capsys.readouterr().out

    def test_error_prints_to_stderr(self, capsys):
        error("Batch failed")
        captured = capsys.readouterr()
        assert "Batch failed" in captured.err
        assert "Batch failed" not in captured.out
