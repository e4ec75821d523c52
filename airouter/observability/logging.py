"""
airouter - Structured JSON Logging

One JSON object per line on stdout. Lines written while a request is in
flight also carry the fields of the LogContext that process_request sets.

Keyword arguments passed to a StructuredLogger call become top-level keys:

    logger.warning("Provider attempt failed", attempted_provider="remote")
"""

import os
import sys
import json
import logging
from typing import Optional, Dict, Any, Union
from datetime import datetime, timezone
from dataclasses import dataclass, field
from contextvars import ContextVar
from functools import partialmethod

_request_context: ContextVar[Optional["LogContext"]] = ContextVar("log_context", default=None)


@dataclass
class LogContext:
    """
    Per-request logging context.

    Stored in a ContextVar, so concurrent requests on one event loop
    never see each other's fields.
    """
    request_id: str = ""
    provider: str = ""
    routing_reason: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def get_current(cls) -> Optional["LogContext"]:
        return _request_context.get()

    @classmethod
    def set_current(cls, ctx: Optional["LogContext"]):
        return _request_context.set(ctx)

    @classmethod
    def reset(cls, token):
        """Restore the context that was active before ``set_current``."""
        _request_context.reset(token)

    def update(self, **kwargs):
        for key, value in kwargs.items():
            if hasattr(self, key) and key != "extra":
                setattr(self, key, value)
            else:
                self.extra[key] = value

    def to_dict(self) -> Dict[str, Any]:
        """Set fields only; empty strings are left out."""
        fields = {
            "request_id": self.request_id,
            "provider": self.provider,
            "routing_reason": self.routing_reason,
        }
        result = {key: value for key, value in fields.items() if value}
        result.update(self.extra)
        return result


class JSONFormatter(logging.Formatter):
    """Renders a record as JSON, merged with the active LogContext.

    Field names containing a sensitive word (``api_key``, ``authorization``)
    are replaced with ``[REDACTED]`` unless ``redact_sensitive`` is off.
    """

    SENSITIVE_FIELDS = {
        "password", "secret", "token", "api_key", "apikey",
        "authorization", "auth", "credential", "private_key",
    }

    # Built-in LogRecord attributes, never copied into the output
    RESERVED = {
        "name", "msg", "args", "created", "filename",
        "funcName", "levelname", "levelno", "lineno",
        "module", "msecs", "pathname", "process",
        "processName", "relativeCreated", "stack_info",
        "exc_info", "exc_text", "thread", "threadName",
        "message", "taskName",
    }

    def __init__(self, include_location: bool = False, redact_sensitive: bool = True):
        super().__init__()
        self.include_location = include_location
        self.redact_sensitive = redact_sensitive

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_location:
            log_data["location"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        ctx = LogContext.get_current()
        if ctx:
            log_data.update(ctx.to_dict())

        for key, value in record.__dict__.items():
            if key in self.RESERVED:
                continue
            if self.redact_sensitive and self._is_sensitive(key):
                value = "[REDACTED]"
            log_data[key] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)

    def _is_sensitive(self, field_name: str) -> bool:
        field_lower = field_name.lower()
        return any(sensitive in field_lower for sensitive in self.SENSITIVE_FIELDS)


class StructuredLogger:
    """Thin wrapper over logging.Logger: keyword arguments go to ``extra``."""

    _LOGGING_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel"})

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, *args, **kwargs):
        options = {k: kwargs.pop(k) for k in list(kwargs) if k in self._LOGGING_KWARGS}
        extra = kwargs.pop("extra", {})
        extra.update(kwargs)
        self._logger.log(level, msg, *args, extra=extra, **options)

    debug = partialmethod(_log, logging.DEBUG)
    info = partialmethod(_log, logging.INFO)
    warning = partialmethod(_log, logging.WARNING)
    error = partialmethod(_log, logging.ERROR)

    def exception(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, exc_info=True, **kwargs)


_logging_configured = False


def setup_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = True,
    include_location: bool = False,
    redact_sensitive: bool = True,
) -> None:
    """
    Route all logging to stdout, replacing any handlers already installed.

    The server lifespan calls this with LOG_LEVEL / LOG_FORMAT. ``json_output``
    False gives a plain one-line format for reading logs in a terminal.
    """
    global _logging_configured

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if json_output:
        formatter = JSONFormatter(
            include_location=include_location,
            redact_sensitive=redact_sensitive,
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # HTTP client and access logs stay at WARNING
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger, configuring logging from the environment
    (LOG_LEVEL, LOG_FORMAT) on first use.
    """
    if not _logging_configured:
        level = os.getenv("LOG_LEVEL", "INFO")
        json_output = os.getenv("LOG_FORMAT", "json").lower() == "json"
        setup_logging(level=level, json_output=json_output)

    return StructuredLogger(logging.getLogger(name))
