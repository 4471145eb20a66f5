"""
Unit tests for the rich logging setup.
"""

import io
import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from guided_json.utils import setup_logging


class TestSetupLogging:
    """Test rich logging configuration."""

    def test_configures_package_logger(self):
        logger = setup_logging(level="DEBUG")

        assert logger.name == "guided_json"
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    def test_repeat_call_keeps_one_handler(self):
        setup_logging(level="INFO")
        logger = setup_logging(level="WARNING")

        handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1
        assert logger.level == logging.WARNING

    def test_numeric_level(self):
        assert setup_logging(level=logging.ERROR).level == logging.ERROR

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging(level="LOUD")

    def test_module_loggers_reach_console(self):
        """Records from package modules go through the rich handler."""
        stream = io.StringIO()
        setup_logging(level="INFO", console=Console(file=stream, width=200))

        logging.getLogger("guided_json.decoding.cache").info("cache ready")

        assert "cache ready" in stream.getvalue()
