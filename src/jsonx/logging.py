# topmark:header:start
#
#   project      : jsonx
#   file         : logging.py
#   file_relpath : src/jsonx/logging.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Custom jsonx logging with TRACE logging.

This module extends the standard logging module with jsonx-specific features,
including a custom TRACE level, a specialized logger class, and colored output formatting.

The library never configures handlers on import; applications (and the test suite)
call [`setup_logging`][jsonx.logging.setup_logging] explicitly.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING, Any, Final, TypeAlias

from yachalk import chalk

if TYPE_CHECKING:
    from collections.abc import Mapping

# Define TRACE_LEVEL as a module-level constant
TRACE_LEVEL: Final[int] = logging.DEBUG - 5

ENV_LOG_LEVEL: Final[str] = "JSONX_LOG_LEVEL"


class JsonxLogger(logging.Logger):
    """Custom logger class for jsonx with support for a TRACE log level below DEBUG."""

    def trace(
        self,
        msg: object,
        *args: object,
        extra: Mapping[str, object] | None = None,
    ) -> None:
        """Log 'msg % args' with severity 'TRACE'.

        Args:
            msg (object): The message to be logged.
            *args (object): Variable length argument list for the message.
            extra (Mapping[str, object] | None): Optional dictionary of extra information to pass
                to the logger.
        """
        if self.isEnabledFor(TRACE_LEVEL):
            self._log(
                TRACE_LEVEL,
                msg=msg,
                args=args,
                extra=extra,
                stacklevel=2,
            )


class JsonxLoggerAdapter(logging.LoggerAdapter):  # type: ignore[type-arg]
    """TRACE-capable wrapper around a plain logger.

    Used when a ``jsonx.*`` logger was created by the application (for example
    through ``logging.config.dictConfig``) before jsonx was imported, so the
    registered instance is not a [`JsonxLogger`][jsonx.logging.JsonxLogger].
    """

    def __init__(self, logger: logging.Logger) -> None:
        super().__init__(logger, {})

    def process(self, msg: object, kwargs: Any) -> tuple[object, Any]:
        return msg, kwargs

    def trace(
        self,
        msg: object,
        *args: object,
        extra: Mapping[str, object] | None = None,
    ) -> None:
        """Log 'msg % args' with severity 'TRACE' on the wrapped logger."""
        if self.logger.isEnabledFor(TRACE_LEVEL):
            self.logger.log(TRACE_LEVEL, msg, *args, extra=extra, stacklevel=2)


TraceLogger: TypeAlias = "JsonxLogger | JsonxLoggerAdapter"


if not hasattr(logging, "TRACE"):
    logging.addLevelName(TRACE_LEVEL, "TRACE")
    # Expose TRACE_LEVEL as logging.TRACE
    logging.TRACE = TRACE_LEVEL  # type: ignore


LOG_FORMAT = "[%(levelname)s] %(message)s"
DEBUG_LOG_FORMAT = "[%(levelname)s] [%(filename)s:%(lineno)d] [%(funcName)s] %(message)s"


class ChalkFormatter(logging.Formatter):
    """Formatter that outputs log records with chalk-colored formatting based on severity level."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the specified record with colors based on log level.

        Args:
            record (logging.LogRecord): The LogRecord to be formatted.

        Returns:
            str: The colorized formatted log message as a string.
        """
        level = record.levelno
        message = super().format(record)

        if level >= logging.CRITICAL:
            return chalk.red_bright(message)
        if level >= logging.ERROR:
            return chalk.red(message)
        if level >= logging.WARNING:
            return chalk.yellow(message)
        if level >= logging.INFO:
            return chalk.green(message)
        if level >= logging.DEBUG:
            return chalk.gray(message)
        if level >= TRACE_LEVEL:
            return chalk.blue(message)
        return chalk.dim.red(message)


_LEVEL_NAMES: Final[dict[str, int]] = {
    "TRACE": TRACE_LEVEL,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
    "FATAL": logging.CRITICAL,
    "NOTSET": logging.NOTSET,
}


def resolve_env_log_level() -> int | None:
    """Return a logging level from environment or None if unset.

    Honors JSONX_LOG_LEVEL (e.g., "TRACE", "DEBUG", "INFO", numeric "10").
    """
    val = os.environ.get(ENV_LOG_LEVEL)
    if not val:
        return None
    v = val.strip().upper()
    if v.isdigit():
        return int(v)
    return _LEVEL_NAMES.get(v)


def setup_logging(level: int | None = None) -> None:
    """Configure the ``jsonx`` logger with a specified log level and colored output.

    If ``level`` is None, environment variables are consulted via
    [`resolve_env_log_level`][jsonx.logging.resolve_env_log_level].
    Default is CRITICAL when unspecified.
    """
    if level is None:
        level = resolve_env_log_level() or logging.CRITICAL

    pkg_logger = logging.getLogger("jsonx")
    pkg_logger.setLevel(level)

    # Remove all existing handlers to prevent duplicate log messages
    for handler in pkg_logger.handlers[:]:
        pkg_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    formatter = ChalkFormatter(LOG_FORMAT if level >= logging.INFO else DEBUG_LOG_FORMAT)
    handler.setFormatter(formatter)
    pkg_logger.addHandler(handler)

    pkg_logger.propagate = False


def get_logger(name: str) -> TraceLogger:
    """Retrieve a TRACE-capable logger with the specified name.

    The global logger class is left untouched; jsonx loggers are created through
    a manager bound to [`JsonxLogger`][jsonx.logging.JsonxLogger] instead. If a
    plain logger already exists under ``name``, it is wrapped in a
    [`JsonxLoggerAdapter`][jsonx.logging.JsonxLoggerAdapter].

    Args:
        name (str): The name of the logger.

    Returns:
        TraceLogger: A JsonxLogger instance, or an adapter around an existing logger.
    """
    manager = logging.Logger.manager
    previous = manager.loggerClass
    manager.setLoggerClass(JsonxLogger)
    try:
        logger = manager.getLogger(name)
    finally:
        manager.loggerClass = previous
    if isinstance(logger, JsonxLogger):
        return logger
    return JsonxLoggerAdapter(logger)
