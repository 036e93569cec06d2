"""Logging setup for cashflow-calc.

Engine modules obtain their loggers through :func:`get_logger`, which keeps
them under the ``cashflow_calc`` namespace. Until :func:`setup_logging` runs
the package logger only carries a ``NullHandler``, so library callers see
nothing unless they configure logging themselves. The CLI calls
:func:`setup_logging` once per invocation; records go to stderr so that
tables printed on stdout stay clean.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from .exceptions import ConfigurationError

PACKAGE_LOGGER = "cashflow_calc"

STANDARD_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        # Decimal amounts in log arguments are rendered as strings
        return json.dumps(log_data, default=str)


_FORMATTERS: Dict[str, Callable[[], logging.Formatter]] = {
    "standard": lambda: logging.Formatter(fmt=STANDARD_FORMAT, datefmt=DATE_FORMAT),
    "json": JsonFormatter,
}


def setup_logging(level: str = "WARNING", format_type: str = "standard") -> None:
    """Send log records to stderr at ``level`` using the ``format_type`` layout.

    An unknown level falls back to WARNING; an unknown format raises
    ``ConfigurationError``. Existing root handlers are replaced.
    """
    try:
        formatter = _FORMATTERS[format_type.lower()]()
    except KeyError:
        raise ConfigurationError(f"Unknown log format: {format_type!r}") from None
    log_level = getattr(logging, level.upper(), logging.WARNING)
    if not isinstance(log_level, int):
        log_level = logging.WARNING

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for old in root_logger.handlers[:]:
        root_logger.removeHandler(old)
    root_logger.addHandler(handler)

    logging.getLogger(PACKAGE_LOGGER).setLevel(log_level)


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` inside the package namespace.

    Module names already under ``cashflow_calc`` are used as given; anything
    else becomes a child of the package logger.
    """
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
