"""Logging for codedeployctl runs.

Messages carry key=value context, e.g. ``Uploading [bucket=b key=app.zip]``.
Context keys that look like credentials are never written out.
"""

import logging
import sys
from enum import Enum
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "codedeployctl"

# Context keys containing any of these fragments are never written out
SENSITIVE_FRAGMENTS = ("secret", "token", "password", "session")

# Libraries that log every request at INFO or DEBUG
NOISY_LIBRARIES = ("boto3", "botocore", "urllib3", "s3transfer")


class LogLevel(str, Enum):
    """Log level enumeration."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    rich_output: bool = True,
) -> logging.Logger:
    """Send log records to stderr so stdout stays parseable in json/yaml mode.

    Args:
        level: The logging level
        rich_output: Render with Rich instead of plain timestamped lines

    Returns:
        The codedeployctl logger
    """
    log_level = getattr(logging, level.value.upper())

    if rich_output:
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # AWS SDK chatter only shows up with --debug
    library_level = logging.DEBUG if level == LogLevel.DEBUG else logging.WARNING
    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(log_level)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the codedeployctl namespace."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(fragment in lowered for fragment in SENSITIVE_FRAGMENTS)


def mask_value(value: str, visible: int = 4) -> str:
    """Keep a recognisable prefix of an identifier, e.g. ``AKIA***``."""
    if len(value) > visible:
        return value[:visible] + "***"
    return "***"


class StructuredLogger:
    """Logger that appends bound and per-call context to each message."""

    def __init__(self, name: str):
        self._logger = get_logger(name)
        self._context: dict[str, Any] = {}

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **kwargs: Any) -> "StructuredLogger":
        """Copy of this logger that adds kwargs to every message."""
        bound = StructuredLogger(self._logger.name)
        bound._context = {**self._context, **kwargs}
        return bound

    def _format_message(self, message: str, **kwargs: Any) -> str:
        context = {**self._context, **kwargs}
        if not context:
            return message
        rendered = " ".join(
            f"{key}={'***' if is_sensitive(key) else value}"
            for key, value in context.items()
            if value is not None
        )
        return f"{message} [{rendered}]" if rendered else message

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self._logger.error(self._format_message(message, **kwargs), exc_info=exc_info)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log at error level with the active traceback."""
        self._logger.exception(self._format_message(message, **kwargs))
