"""The logging configuration module.

Every log call goes through a ``ContextualLogger``. Request handlers get one
bound to the request id, account and auth method; services narrow it with a
``component`` dimension. Dimensions travel in the record under
``custom_dimensions``, which the JSON formatter emits as a nested object.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

ROOT_LOGGER_NAME = "meterly"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s%(dimensions)s"

# LogRecord attributes that are never copied into the JSON payload as extras.
_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "custom_dimensions",
    "dimensions",
}


class JSONFormatter(logging.Formatter):
    """One JSON document per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON.

        Args:
        ----
            record (logging.LogRecord): The log record to format

        Returns:
        -------
            str: JSON-formatted log message

        """
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        dimensions = getattr(record, "custom_dimensions", None)
        if dimensions:
            entry["custom_dimensions"] = dimensions

        for key, value in record.__dict__.items():
            if key not in _RECORD_FIELDS and key not in entry:
                entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for local development, dimensions appended as ``k=v``."""

    def __init__(self) -> None:
        """Initialize with the text layout."""
        super().__init__(TEXT_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        """Render the record, appending its dimensions in brackets."""
        dimensions = getattr(record, "custom_dimensions", None) or {}
        record.dimensions = (
            " [" + " ".join(f"{k}={v}" for k, v in dimensions.items()) + "]" if dimensions else ""
        )
        return super().format(record)


class ContextualLogger(logging.LoggerAdapter):
    """A LoggerAdapter carrying structured dimensions."""

    def __init__(self, logger: logging.Logger, dimensions: Optional[dict] = None) -> None:
        """Initialize the contextual logger.

        Args:
        ----
            logger (logging.Logger): Base logger instance
            dimensions (Optional[dict]): Custom dimensions for structured logging

        """
        super().__init__(logger, {})
        self.dimensions = dimensions or {}

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        """Merge the bound dimensions into the call's ``extra``."""
        extra = kwargs.setdefault("extra", {})
        if self.dimensions:
            extra["custom_dimensions"] = {
                **extra.get("custom_dimensions", {}),
                **self.dimensions,
            }
        return msg, kwargs

    def with_context(self, **dimensions: str | int | float | bool | None) -> "ContextualLogger":
        """Return a logger with ``dimensions`` added to the bound ones.

        Example:
        -------
            ``logger.with_context(account_id=str(account_id)).info("Granted 10 credits")``

        """
        return ContextualLogger(self.logger, {**self.dimensions, **dimensions})


def configure_logger(
    name: str = ROOT_LOGGER_NAME, dimensions: Optional[dict] = None
) -> ContextualLogger:
    """Configure the named logger once and wrap it with ``dimensions``.

    Text output when ``LOCAL_DEVELOPMENT`` is set, JSON otherwise; the level
    comes from ``LOG_LEVEL``.
    """
    base = logging.getLogger(name)

    # Import settings here to avoid circular imports
    from meterly.core.config import settings

    base.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    base.propagate = False

    if not getattr(base, "_meterly_configured", False):
        base.handlers.clear()
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(TextFormatter() if settings.LOCAL_DEVELOPMENT else JSONFormatter())
        base.addHandler(handler)
        base._meterly_configured = True

    return ContextualLogger(base, dimensions)


# Default logger instance
logger = configure_logger()
