"""Logging setup for the command-line entry point."""

import logging

from rich.logging import RichHandler

from .output import err_console

LOG_FORMAT = "%(name)s: %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Route pvedash logs through Rich on stderr.

    Args:
        verbose: Log at DEBUG instead of WARNING
    """
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger = logging.getLogger("pvedash")
    logger.handlers = [handler]
    logger.setLevel(level)
    logger.propagate = False

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
