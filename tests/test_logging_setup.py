"""Tests for logging_setup module."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from rich.logging import RichHandler

from chaptermark.logging_setup import LOGGER_NAME, setup_logging


@pytest.fixture(autouse=True)
def reset_logger() -> Iterator[None]:
    """Leave the package logger as the tests found it."""
    logger = logging.getLogger(LOGGER_NAME)
    level, handlers = logger.level, list(logger.handlers)
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_default_setup(self) -> None:
        """Test default logging setup."""
        logger = setup_logging()
        assert logger.name == "chaptermark"
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

    def test_custom_log_level(self) -> None:
        logger = setup_logging(log_level="DEBUG")
        assert logger.level == logging.DEBUG

    def test_invalid_log_level_defaults_to_info(self) -> None:
        logger = setup_logging(log_level="INVALID")
        assert logger.level == logging.INFO

    def test_case_insensitive_log_level(self) -> None:
        logger = setup_logging(log_level="warning")
        assert logger.level == logging.WARNING

    def test_plain_console(self) -> None:
        """rich_console=False uses a plain stream handler."""
        logger = setup_logging(rich_console=False)
        assert not isinstance(logger.handlers[0], RichHandler)
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_repeated_setup_does_not_duplicate(self) -> None:
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_with_log_file(self, tmp_path: Path) -> None:
        """File handler records DEBUG even when the console level is higher."""
        log_file = tmp_path / "logs" / "run.log"
        logger = setup_logging(log_level="WARNING", log_file=log_file)

        file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1

        logging.getLogger("chaptermark.tag").debug("Debug detail")
        file_handlers[0].flush()
        assert "Debug detail" in log_file.read_text()
        assert "[chaptermark.tag]" in log_file.read_text()
