"""
Logging - Log configuration for the reffy CLI.

Supports a human-readable text format and a JSON-lines format for log
aggregation.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO


TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """
    Format records as one JSON object per line.

    Attributes:
        static_fields: Extra fields added to every record (e.g. service name).
    """

    def __init__(self, static_fields: dict[str, Any] | None = None):
        super().__init__()
        self.static_fields = static_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update(self.static_fields)
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


def setup_logging(
    level: int = logging.INFO,
    log_format: str = "text",
    log_file: str | None = None,
    static_fields: dict[str, Any] | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        level: Logging level
        log_format: "text" or "json"
        log_file: Also write logs to this file
        static_fields: Fields added to every JSON record
        stream: Console stream (defaults to stderr)

    Returns:
        The configured root logger
    """
    formatter: logging.Formatter
    if log_format == "json":
        formatter = JSONFormatter(static_fields)
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(level)

    # urllib3 is noisy at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))
    return root
