"""
Tests for the logging configuration module.
"""

import logging

import pytest

from hotel_geosearch.logging_config import setup_logging, get_logger


@pytest.fixture(autouse=True)
def cleanup_logger():
    """Remove all handlers from the hotel_geosearch logger after each test."""
    yield
    logger = logging.getLogger("hotel_geosearch")
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)


class TestSetupLogging:
    """Tests for logging setup."""

    def test_setup_creates_logger(self, tmp_path):
        """setup_logging should create a configured logger."""
        setup_logging(level="DEBUG", log_file=str(tmp_path / "test.log"))

        logger = logging.getLogger("hotel_geosearch")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) >= 2  # file + console

    def test_setup_creates_log_file_directory(self, tmp_path):
        """setup_logging should create the log file directory if missing."""
        setup_logging(level="INFO", log_file=str(tmp_path / "subdir" / "test.log"))
        assert (tmp_path / "subdir").exists()

    def test_module_messages_reach_file(self, tmp_path):
        """Messages from a module logger should propagate to the file handler."""
        log_file = tmp_path / "test.log"
        setup_logging(level="DEBUG", log_file=str(log_file))

        get_logger("hotel_geosearch.search.engine").warning("Rejected location search")
        for handler in logging.getLogger("hotel_geosearch").handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "Rejected location search" in content
        assert "hotel_geosearch.search.engine" in content

    def test_quiets_third_party_loggers(self, tmp_path):
        setup_logging(level="DEBUG", log_file=str(tmp_path / "test.log"))
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        assert logging.getLogger("redis").level == logging.WARNING


class TestGetLogger:
    """Tests for the get_logger helper."""

    def test_returns_namespaced_logger(self):
        """get_logger should return a logger under hotel_geosearch namespace."""
        assert get_logger("test_module").name == "hotel_geosearch.test_module"

    def test_module_name_not_double_prefixed(self):
        """__name__ of a package module is already namespaced."""
        assert get_logger("hotel_geosearch.data.cache").name == "hotel_geosearch.data.cache"

    def test_different_modules_get_different_loggers(self):
        assert get_logger("module_a").name != get_logger("module_b").name
