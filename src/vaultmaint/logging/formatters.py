"""Log formatters for the VaultMaint logging system.

Structured fields reach the standard library as ``LogRecord`` extras; these
formatters render them either as one JSON object per line (for log
shippers) or as a readable line with trailing ``key=value`` pairs (for
cron mail and terminals).

Classes:
    JSONFormatter: JSON format for structured logging
    TextFormatter: Human-readable text format

Example:
    >>> handler.setFormatter(get_formatter("json"))
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterator, Optional, Tuple

# Attributes every LogRecord carries; anything else is a structured field
_STANDARD_RECORD_FIELDS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "exc_info", "exc_text",
    "stack_info", "taskName",
})


def _extra_fields(record: logging.LogRecord) -> Iterator[Tuple[str, Any]]:
    for key, value in record.__dict__.items():
        if key not in _STANDARD_RECORD_FIELDS and not key.startswith("_"):
            yield key, value


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured log output.

    Example:
        {"message":"Operation completed","timestamp":"2024-05-05T03:00:01.120000",
         "level":"INFO","logger":"vaultmaint.executor","operation":"WAL_CHECKPOINT",
         "duration_ms":12.7,"correlation_id":"550e8400-e29b-41d4-a716-446655440000"}
    """

    def __init__(
        self,
        *,
        timestamp_format: str = "iso",
        include_location: bool = False,
        exclude_fields: Optional[list] = None,
    ) -> None:
        """Initialize JSON formatter.

        Args:
            timestamp_format: Timestamp format ("iso" or "unix")
            include_location: Include module, function and line number
            exclude_fields: Fields to leave out of the output
        """
        super().__init__()
        self.timestamp_format = timestamp_format
        self.include_location = include_location
        self.exclude_fields = set(exclude_fields or [])

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single JSON line."""
        log_data: Dict[str, Any] = {"message": record.getMessage()}

        if self.timestamp_format == "unix":
            log_data["timestamp"] = record.created
        else:
            log_data["timestamp"] = datetime.fromtimestamp(record.created).isoformat()

        log_data["level"] = record.levelname
        log_data["logger"] = record.name

        if self.include_location:
            log_data["module"] = record.module
            log_data["function"] = record.funcName
            log_data["line"] = record.lineno

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in _extra_fields(record):
            log_data[key] = value

        for field in self.exclude_fields:
            log_data.pop(field, None)

        return json.dumps(log_data, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """Human-readable text formatter.

    Example:
        2024-05-05 03:00:01.120 [INFO] vaultmaint.executor: Operation completed (operation=WAL_CHECKPOINT, duration_ms=12.7)
    """

    color_codes = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def __init__(
        self,
        *,
        include_extras: bool = True,
        colors: bool = False,
        hidden_fields: Optional[list] = None,
    ) -> None:
        """Initialize text formatter.

        Args:
            include_extras: Append structured fields as key=value pairs
            colors: Colorize the level name
            hidden_fields: Structured fields not worth printing on a terminal
        """
        super().__init__()
        self.include_extras = include_extras
        self.colors = colors
        self.hidden_fields = set(hidden_fields if hidden_fields is not None else ["correlation_id"])

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable text."""
        dt = datetime.fromtimestamp(record.created)
        timestamp = dt.strftime("%Y-%m-%d %H:%M:%S.") + f"{dt.microsecond:06d}"[:3]

        level = record.levelname
        if self.colors and level in self.color_codes:
            level = f"{self.color_codes[level]}[{level}]{self.color_codes['RESET']}"
        else:
            level = f"[{level}]"

        parts = [timestamp, level, f"{record.name}:", record.getMessage()]

        if self.include_extras:
            extras = []
            for key, value in _extra_fields(record):
                if key in self.hidden_fields or key == "exception":
                    continue
                extras.append(f"{key}={value}" if isinstance(value, str) else f"{key}={value!r}")
            if extras:
                parts.append("(" + ", ".join(extras) + ")")

        formatted = " ".join(parts)

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)
        elif isinstance(getattr(record, "exception", None), str):
            formatted += "\n" + record.exception

        return formatted


def get_formatter(format_type: str, **kwargs: Any) -> logging.Formatter:
    """Get formatter instance by type.

    Args:
        format_type: Formatter type ('json' or 'text')
        **kwargs: Additional formatter arguments

    Raises:
        ValueError: If format_type is not supported
    """
    format_type = format_type.lower()

    if format_type == "json":
        return JSONFormatter(**kwargs)
    elif format_type == "text":
        return TextFormatter(**kwargs)
    else:
        raise ValueError(f"Unsupported formatter type: {format_type}")
