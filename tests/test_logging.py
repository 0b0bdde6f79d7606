"""Tests for logging setup."""

import logging
from pathlib import Path

from pyionex.core.config import LoggingConfig
from pyionex.utils.logging import LOG_FILE_NAME, configure_logging, get_logger, setup_logging


class TestSetupLogging:
    """Tests for handler and level configuration."""

    def test_level(self) -> None:
        setup_logging(level="WARNING")
        assert logging.getLogger().level == logging.WARNING

    def test_unknown_level_defaults_to_info(self) -> None:
        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_file_handler(self, tmp_path: Path) -> None:
        setup_logging(level="DEBUG", log_dir=tmp_path / "logs", log_to_file=True, log_to_console=False)
        get_logger("pyionex.test").info("written", maps=2)

        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "written" in (tmp_path / "logs" / LOG_FILE_NAME).read_text()

    def test_file_needs_directory(self) -> None:
        setup_logging(log_to_file=True, log_to_console=False)
        handlers = logging.getLogger().handlers
        assert not any(isinstance(h, logging.FileHandler) for h in handlers)


class TestConfigureLogging:
    """Tests for applying LoggingConfig."""

    def test_config_level(self) -> None:
        configure_logging(LoggingConfig(level="ERROR"))
        assert logging.getLogger().level == logging.ERROR

    def test_level_override(self) -> None:
        configure_logging(LoggingConfig(level="ERROR"), "DEBUG")
        assert logging.getLogger().level == logging.DEBUG
