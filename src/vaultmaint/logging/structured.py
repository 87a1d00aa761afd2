"""Structured logging implementation for VaultMaint.

This module provides structured logging with context management and
correlation IDs. Loggers derived with ``bind`` keep their parent's
correlation ID, so the per-run events of a component can be grepped
together from a shared log file.

Classes:
    StructuredLogger: Main structured logging interface
    LogContext: Context storage for log correlation

Example:
    >>> logger = StructuredLogger("vaultmaint.executor")
    >>> with logger.context(database="db.sqlite3", trigger="cron"):
    ...     logger.info("Run started", operations=3)
    ...     logger.warning("Vault service running, skipping", operation="RECLAIM_SPACE")
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

import structlog

from ..core.exceptions import ValidationError


class LogContext:
    """Thread-local context for log correlation and metadata.

    Example:
        >>> context = LogContext()
        >>> context.set("run_id", "run_123")
        >>> context.get_all()
        {'run_id': 'run_123'}
    """

    def __init__(self) -> None:
        """Initialize log context with thread-local storage."""
        self._local = threading.local()

    def _store(self) -> Dict[str, Any]:
        if not hasattr(self._local, "context"):
            self._local.context = {}
        return self._local.context

    def set(self, key: str, value: Any) -> None:
        """Set context value."""
        self._store()[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get context value, or ``default`` if missing."""
        return self._store().get(key, default)

    def get_all(self) -> Dict[str, Any]:
        """Get a copy of all context values."""
        return self._store().copy()

    def clear(self) -> None:
        """Clear all context values."""
        self._store().clear()

    def update(self, context: Dict[str, Any]) -> None:
        """Update context with multiple values."""
        self._store().update(context)


class StructuredLogger:
    """Structured logger with context management and correlation.

    Keyword arguments passed to the log methods become structured fields
    of the emitted event. Field names must not collide with the standard
    ``logging.LogRecord`` attributes (``name``, ``module``, ``message``...).

    Attributes:
        name: Logger name

    Example:
        >>> logger = StructuredLogger("vaultmaint.analyzer")
        >>> logger.info("Recommendation made", operation="WAL_CHECKPOINT", priority="HIGH")
    """

    def __init__(
        self,
        name: str,
        *,
        level: str = "INFO",
        enable_correlation: bool = True,
        auto_correlation: bool = True,
    ) -> None:
        """Initialize structured logger.

        Args:
            name: Logger name (typically module name)
            level: Initial log level
            enable_correlation: Whether to attach correlation IDs
            auto_correlation: Whether to auto-generate correlation IDs
        """
        self.name = name
        self._enable_correlation = enable_correlation
        self._auto_correlation = auto_correlation

        self._logger = structlog.get_logger(name)
        self._context = LogContext()

        self._stdlib_logger = logging.getLogger(name)
        self._stdlib_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

        if self._enable_correlation and self._auto_correlation:
            self._ensure_correlation_id()

    def _ensure_correlation_id(self) -> str:
        correlation_id = self._context.get("correlation_id")
        if not correlation_id:
            correlation_id = str(uuid.uuid4())
            self._context.set("correlation_id", correlation_id)
        return correlation_id

    def _prepare_event_dict(self, **kwargs: Any) -> Dict[str, Any]:
        """Merge context, correlation ID and event data."""
        event_dict = self._context.get_all()

        if self._enable_correlation:
            event_dict["correlation_id"] = self._ensure_correlation_id()

        event_dict.update(kwargs)
        return event_dict

    @contextmanager
    def context(self, **context_data: Any) -> Generator[None, None, None]:
        """Add context data for the duration of a block.

        Example:
            >>> with logger.context(operation="RECLAIM_SPACE"):
            ...     logger.info("Backup created")
        """
        old_context = self._context.get_all()

        try:
            self._context.update(context_data)
            yield
        finally:
            self._context.clear()
            self._context.update(old_context)

    def bind(self, **context_data: Any) -> "StructuredLogger":
        """Create a new logger instance with bound context.

        Example:
            >>> run_logger = logger.bind(database="db.sqlite3", trigger="manual")
            >>> run_logger.info("Run started")
        """
        bound_logger = StructuredLogger(
            self.name,
            level=self.get_level(),
            enable_correlation=self._enable_correlation,
            auto_correlation=False,
        )

        current_context = self._context.get_all()
        current_context.update(context_data)
        bound_logger._context.update(current_context)

        return bound_logger

    def set_level(self, level: str) -> None:
        """Set logging level.

        Raises:
            ValidationError: If the level name is unknown
        """
        log_level = logging.getLevelName(level.upper())
        if not isinstance(log_level, int):
            raise ValidationError(
                f"Unknown log level: {level}",
                code="UNKNOWN_LOG_LEVEL",
            )

        self._stdlib_logger.setLevel(log_level)

    def get_level(self) -> str:
        """Get current effective logging level name."""
        return logging.getLevelName(self._stdlib_logger.getEffectiveLevel())

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._logger.debug(message, **self._prepare_event_dict(**kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._logger.info(message, **self._prepare_event_dict(**kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._logger.warning(message, **self._prepare_event_dict(**kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._logger.error(message, **self._prepare_event_dict(**kwargs))

    def critical(self, message: str, **kwargs: Any) -> None:
        """Log critical message."""
        self._logger.critical(message, **self._prepare_event_dict(**kwargs))

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log error message with the active exception's traceback."""
        self._logger.error(message, exc_info=True, **self._prepare_event_dict(**kwargs))

    def get_correlation_id(self) -> Optional[str]:
        """Get current correlation ID, or None when correlation is disabled."""
        if not self._enable_correlation:
            return None
        return self._context.get("correlation_id")

    def __repr__(self) -> str:
        """Return string representation of logger."""
        return (
            f"StructuredLogger("
            f"name={self.name!r}, "
            f"level={self.get_level()!r}, "
            f"correlation={self._enable_correlation})"
        )
