"""Structured logging for the basal tracker.

JSON lines in deployed environments, plain text for local work. Every
record carries the request correlation ID when one is set, plus any
keyword fields passed through StructuredLogger.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

DEFAULT_SERVICE_NAME = "basal-tracker-api"

# Set per request by CorrelationIdMiddleware
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class JsonFormatter(logging.Formatter):
    """Render a record as one JSON object.

    Keys: timestamp, level, service, message, logger, and optionally
    correlation_id, exception, location (ERROR and above) and any
    structured fields. Decimals and UUIDs are rendered with ``str``.
    """

    def __init__(self, service_name: str = DEFAULT_SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "message": record.getMessage(),
            "logger": record.name,
        }

        correlation_id = correlation_id_ctx.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno >= logging.ERROR:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Readable single-line format for development.

    Format: timestamp - service - level - [correlation_id] - message key=value ...
    """

    def __init__(self, service_name: str = DEFAULT_SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        correlation_id = correlation_id_ctx.get() or "-"

        base_msg = (
            f"{timestamp} - {self.service_name} - {record.levelname} - "
            f"[{correlation_id}] - {record.getMessage()}"
        )

        fields = getattr(record, "extra_fields", None)
        if fields:
            base_msg += " " + " ".join(f"{key}={value}" for key, value in fields.items())

        if record.exc_info:
            base_msg += f"\n{self.formatException(record.exc_info)}"

        return base_msg


def setup_logging(
    log_format: str = "json",
    log_level: str = "INFO",
    service_name: str = DEFAULT_SERVICE_NAME,
) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        log_format: 'json' for structured logging, anything else for text
        log_level: Logging level name (DEBUG, INFO, WARNING, ...)
        service_name: Service name stamped on every record
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if log_format.lower() == "json":
        handler.setFormatter(JsonFormatter(service_name=service_name))
    else:
        handler.setFormatter(TextFormatter(service_name=service_name))
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


class StructuredLogger:
    """Logger wrapper taking structured fields as keyword arguments."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, msg: str, extra_fields: dict[str, Any] | None = None):
        if not self._logger.isEnabledFor(level):
            return
        record_extra = {"extra_fields": extra_fields} if extra_fields else {}
        self._logger.log(level, msg, extra=record_extra)

    def debug(self, msg: str, **extra_fields: Any) -> None:
        self._log(logging.DEBUG, msg, extra_fields or None)

    def info(self, msg: str, **extra_fields: Any) -> None:
        self._log(logging.INFO, msg, extra_fields or None)

    def warning(self, msg: str, **extra_fields: Any) -> None:
        self._log(logging.WARNING, msg, extra_fields or None)

    def error(self, msg: str, **extra_fields: Any) -> None:
        self._log(logging.ERROR, msg, extra_fields or None)

    def exception(self, msg: str, **extra_fields: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        record_extra = {"extra_fields": extra_fields} if extra_fields else {}
        self._logger.exception(msg, extra=record_extra)


def get_logger(name: str) -> StructuredLogger:
    """Structured logger for a module (pass ``__name__``)."""
    return StructuredLogger(name)
