"""Logging configuration for beatperf."""

import logging
import sys

# Create logger for beatperf
logger = logging.getLogger("beatperf")


def setup_logger(level: int = logging.INFO, log_file: str | None = None, quiet: bool = False) -> None:
    """Setup the beatperf logger.

    Safe to call again; previous handlers are replaced.

    Args:
        level: Logging level (default: INFO)
        log_file: Write records to this file instead of stderr.
        quiet: Discard records unless log_file is given. Used while the TUI
            owns the terminal.
    """
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    handler: logging.Handler
    if log_file is not None:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s beatperf: %(message)s"))
    elif quiet:
        handler = logging.NullHandler()
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("beatperf: %(message)s"))
    handler.setLevel(level)

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
