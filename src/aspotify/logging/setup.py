"""Logging configuration helper."""

import logging
import sys

from aspotify.logging.formatter import JSONLogFormatter


def configure_logging(service: str = "aspotify", level: int = logging.INFO) -> None:
    """Send JSON log lines for the ``aspotify`` logger hierarchy to stdout.

    Only the library's own logger is touched, so the embedding
    application's root logging setup is left alone.
    """
    logger = logging.getLogger("aspotify")
    logger.setLevel(level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONLogFormatter(service=service))
    logger.addHandler(handler)
    logger.propagate = False
