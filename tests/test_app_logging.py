"""Tests for logging configuration."""

import logging

from image_optimizer.app_logging import configure_logging


def test_configure_logging_adds_a_single_handler() -> None:
    logger = logging.getLogger("image_optimizer")
    logger.handlers.clear()

    configure_logging()
    configure_logging()

    assert len(logger.handlers) == 1
    assert logger.propagate is False


def test_configure_logging_applies_level() -> None:
    logger = configure_logging("debug")
    assert logger.level == logging.DEBUG

    configure_logging("not-a-level")
    assert logger.level == logging.INFO
