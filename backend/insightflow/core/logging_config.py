"""
Structured JSON logging configuration.

Every log line is one JSON object: timestamp, level, message, logger name,
then any ``extra`` fields (company_name, user_id, correlation_id, ...).
While a request is being served its correlation id is held in
``request_id_var`` and added to every record logged during that request,
so scraping, model calls and database work can be traced back to the
HTTP request that caused them.

Logs are written to stdout.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Dict, Optional


# Set by RequestIDMiddleware for the duration of a request
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "sqlalchemy.engine", "matplotlib", "openai", "trafilatura")

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes of a bare LogRecord; everything else arrived through ``extra``
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def get_request_id() -> Optional[str]:
    """Correlation id of the request being served, if any."""
    return request_id_var.get()


class JSONFormatter(logging.Formatter):
    """
    Render log records as single-line JSON.

    ``extra`` keys with a None value are left out. Values json cannot
    encode (sets, datetimes, exceptions) are written with ``str()``.

    Example output:
        {"timestamp": "2025-03-01T10:30:00.123456", "level": "INFO",
         "message": "Company analysis completed", "logger": "insightflow.services.company_analysis",
         "company_name": "Tesla", "latency_ms": 5321.7, "request_id": "abc-123"}
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        payload.update(self._extra_fields(record, exclude=payload))

        request_id = get_request_id()
        if request_id and "request_id" not in payload:
            payload["request_id"] = request_id

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(payload, default=str)

    @staticmethod
    def _extra_fields(record: logging.LogRecord, exclude: Dict[str, Any]) -> Dict[str, Any]:
        return {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and key not in exclude and value is not None
        }


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """
    Configure the root logger.

    Existing root handlers are replaced by one stdout handler. Unknown
    level names fall back to INFO. Third-party loggers in
    ``NOISY_LOGGERS`` are limited to WARNING.

    Args:
        level: Level name, case-insensitive
        json_format: JSON lines (True) or the plain text format (False)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT, "%Y-%m-%d %H:%M:%S"))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: str, message: str, **context: Any) -> None:
    """
    Log ``message`` at ``level`` with keyword context as ``extra``.

    None values are dropped, so optional fields can be passed through
    unconditionally.

    Example:
        log_with_context(logger, "info", "Comparison completed",
                         user_id=user.id, company_count=3, latency_ms=1834.2)
    """
    extra = {key: value for key, value in context.items() if value is not None}
    getattr(logger, level.lower())(message, extra=extra)
