"""
Logging for the remote IP middleware.

Records carry the view of the request the middleware resolved (client
address, scheme, server name) through a context variable, so every log
line written while a request is processed can be tied to the real client
rather than to the proxy in front of it.

Two output formats are available, selected by ``LOG_CONSOLE_FORMAT``:
``json`` for log collectors and ``human`` for a terminal. Errors are also
written to ``LOG_FILE_PATH`` as JSON lines.
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any

from remote_ip.constants import MAX_LOG_SIZE_BYTES
from remote_ip.settings import app_settings

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Request-scoped fields merged into every record
log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

# Attributes every LogRecord has; anything else was passed via ``extra``
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName", "client_display"}


def set_log_context(**kwargs: Any) -> None:
    """
    Add fields to the log context of the current request.

    Example:
        >>> set_log_context(remote_addr="203.0.113.7", scheme="https")
        >>> logger.info("Resolved client")  # carries both fields
    """
    # New dict each time; a request never mutates another request's fields
    log_context.set({**log_context.get(), **kwargs})


def get_log_context() -> dict[str, Any]:
    return log_context.get()


def clear_log_context() -> None:
    """Drop all request fields, once the request is finished."""
    log_context.set({})


def _json_safe(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class StructuredJSONFormatter(logging.Formatter):
    """
    Renders each record as one JSON object per line.

    The object holds the record's level, logger, message and source
    location, the request fields from the log context, the environment,
    a formatted traceback when there is one, and any ``extra`` fields.
    Lines over MAX_LOG_SIZE_BYTES get their message cut short.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            **get_log_context(),
            "environment": app_settings.ENV.value,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        payload.update(
            (key, _json_safe(value))
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS
        )

        line = json.dumps(payload)
        if len(line) <= MAX_LOG_SIZE_BYTES:
            return line

        # Leave room for the remaining fields
        payload["message"] = (
            payload["message"][: MAX_LOG_SIZE_BYTES - 1000] + "... [TRUNCATED]"
        )
        return json.dumps(payload)


class HumanReadableFormatter(logging.Formatter):
    """
    Terminal formatter showing the resolved client in brackets.

    INFO lines are short; every other level also shows where the record
    was emitted.
    """

    SHORT_FMT = "%(asctime)s - [%(client_display)s] %(levelname)s: %(message)s"
    LONG_FMT = (
        "%(asctime)s - [%(client_display)s] %(levelname)s: "
        "%(module)s.%(funcName)s:%(lineno)d - %(message)s"
    )

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._short = logging.Formatter(self.SHORT_FMT, datefmt=DATE_FORMAT)
        self._long = logging.Formatter(self.LONG_FMT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        record.client_display = get_log_context().get("remote_addr", "-")
        if record.levelno == logging.INFO:
            return self._short.format(record)
        return self._long.format(record)


def setup_logging() -> logging.Logger:
    """
    Configure the ``remote_ip`` logger.

    Installs a console handler in the configured format and a JSON error
    file handler. When the log file cannot be opened the file handler is
    skipped with a warning and console logging still works.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger("remote_ip")
    logger.setLevel(getattr(logging, app_settings.LOG_LEVEL.upper()))
    logger.propagate = False
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(
        HumanReadableFormatter()
        if app_settings.LOG_CONSOLE_FORMAT.lower() == "human"
        else StructuredJSONFormatter()
    )
    logger.addHandler(console_handler)

    try:
        file_handler = logging.FileHandler(app_settings.LOG_FILE_PATH)
    except OSError as e:
        logger.warning(f"Error log file disabled: {e}")
    else:
        file_handler.setLevel(logging.ERROR)
        file_handler.setFormatter(StructuredJSONFormatter())
        logger.addHandler(file_handler)

    return logger


logger = setup_logging()
