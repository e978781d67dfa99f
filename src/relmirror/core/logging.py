"""Logging setup for the relmirror command line."""

import logging

from rich.console import Console
from rich.logging import RichHandler


LOGGER_NAME = "relmirror"


def setup_logging(
    level: int = logging.INFO,
    console: Console | None = None,
) -> logging.Logger:
    """Route relmirror log records to a rich handler.

    Safe to call more than once; the previous handler is replaced.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def verbosity_to_level(verbose: int, quiet: int) -> int:
    """Map -v/-q counts to a logging level, INFO being the default."""
    step = verbose - quiet
    if step >= 1:
        return logging.DEBUG
    if step == 0:
        return logging.INFO
    if step == -1:
        return logging.WARNING
    return logging.ERROR
