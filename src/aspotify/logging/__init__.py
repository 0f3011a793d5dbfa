"""Structured logging for applications embedding the client."""

from aspotify.logging.formatter import JSONLogFormatter
from aspotify.logging.setup import configure_logging

__all__ = ["JSONLogFormatter", "configure_logging"]
