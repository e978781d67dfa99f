"""Tests for logging setup."""

import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from relmirror.core.logging import LOGGER_NAME, setup_logging, verbosity_to_level


@pytest.mark.parametrize(
    "verbose,quiet,expected",
    [
        (0, 0, logging.INFO),
        (1, 0, logging.DEBUG),
        (3, 0, logging.DEBUG),
        (0, 1, logging.WARNING),
        (0, 2, logging.ERROR),
        (0, 5, logging.ERROR),
        (1, 1, logging.INFO),
        (2, 1, logging.DEBUG),
    ],
)
def test_verbosity_to_level(verbose, quiet, expected):
    assert verbosity_to_level(verbose, quiet) == expected


def test_setup_logging_replaces_handler():
    console = Console(stderr=True)

    setup_logging(logging.INFO, console)
    logger = setup_logging(logging.DEBUG, console)

    rich_handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
    assert logger.name == LOGGER_NAME
    assert len(rich_handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False
