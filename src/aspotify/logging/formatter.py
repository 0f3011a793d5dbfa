"""JSON log formatter for structured logging output."""

import json
import logging
from datetime import UTC, datetime

# Fields the client attaches through ``extra=`` on its own log calls.
CONTEXT_FIELDS = ("method", "path", "status_code", "retry_after", "attempt", "grant_type", "error_type")


class JSONLogFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects.

    Output format::

        {"timestamp": "...", "level": "WARNING", "service": "aspotify",
         "logger": "aspotify.executor", "message": "...",
         "method": "GET", "path": "/albums/...", "status_code": 429,
         "retry_after": 2.0, "attempt": 1}

    Request context (method, path, status, backoff, grant type) is copied
    from the record when the client supplied it.
    """

    def __init__(self, service: str = "aspotify") -> None:
        super().__init__()
        self._service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "service": self._service,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception_type"] = type(record.exc_info[1]).__name__
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
