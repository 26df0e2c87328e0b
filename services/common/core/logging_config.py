"""
Logging Configuration

Provides:
- CustomJsonFormatter: one JSON object per line, carrying trace context
- setup_logging: dictConfig from YAML with ${VAR} substitution
"""

import json
import logging
import logging.config
import os
import string
from datetime import datetime, timezone

import yaml

from .request_context import get_request_id, get_trace_id

# Attributes every LogRecord carries; anything else arrived via `extra=`.
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


class CustomJsonFormatter(logging.Formatter):
    """
    JSON log formatter.

    Fields:
      - _time: ISO8601 timestamp (millisecond precision)
      - level: Log level
      - logger: Logger name (e.g. gateway.router, uvicorn.error)
      - message: Log message
      - trace_id: X-Amzn-Trace-Id of the request being handled
      - request_id: per-request UUID
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "_time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        trace_id = getattr(record, "trace_id", None) or get_trace_id()
        if trace_id:
            log_data["trace_id"] = trace_id
        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key.startswith("_") or key in log_data:
                continue
            log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(config_path: str = "logging.yml", level: str = "INFO"):
    """
    Load the YAML config, substitute environment variables, and initialize logging.

    Falls back to basicConfig when the file does not exist.
    """
    if not os.path.exists(config_path):
        logging.basicConfig(level=level)
        return

    with open(config_path, "r", encoding="utf-8") as f:
        template = string.Template(f.read())

    mapping = os.environ.copy()
    mapping.setdefault("LOG_LEVEL", level)

    config = yaml.safe_load(template.safe_substitute(mapping))
    logging.config.dictConfig(config)
