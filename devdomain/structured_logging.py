"""
Logging setup for devdomain.

Text logging by default; JSON lines when DEVDOMAIN_LOG_FORMAT=json, with any
``extra=`` fields (domain, port, ...) carried as top-level keys.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# Attributes every LogRecord has; anything else came in through ``extra=``
_RECORD_FIELDS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """Formats records as one JSON object per line"""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": timestamp.strftime("%Y-%m-%dT%H:%M:%S") + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "file": f"{record.filename}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RECORD_FIELDS and not key.startswith("_"):
                entry[key] = value

        return json.dumps(entry, default=str)


def is_json_logging_enabled() -> bool:
    return os.getenv("DEVDOMAIN_LOG_FORMAT", "text").lower() == "json"


def setup_logging(level: str | None = None, log_file: str | None = None, force: bool = False) -> None:
    """
    Configure the root logger from the environment.

    Environment variables:
    - DEVDOMAIN_LOG_FORMAT: "json" or "text" (default: text)
    - DEVDOMAIN_LOG_LEVEL: Log level (default: INFO)
    - DEVDOMAIN_LOG_FILE: Optional log file path
    """
    level = (level or os.getenv("DEVDOMAIN_LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("DEVDOMAIN_LOG_FILE")

    formatter = JSONFormatter() if is_json_logging_enabled() else logging.Formatter(TEXT_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            print(f"Warning: Could not open log file {log_file}: {e}", file=sys.stderr)
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=force)
