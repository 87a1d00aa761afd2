"""VaultMaint structured logging framework.

Classes:
    StructuredLogger: Main structured logging interface
    PerformanceLogger: Operation timing
    LoggerFactory: Logger creation and configuration

Example:
    >>> from vaultmaint.logging import get_logger, get_performance_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Metrics collected", file_size_mb=12.4)
    >>>
    >>> perf_logger = get_performance_logger("maintenance")
    >>> with perf_logger.measure("WAL_CHECKPOINT"):
    ...     connection.execute("PRAGMA wal_checkpoint(TRUNCATE)")
"""

from .factory import (
    LoggerFactory,
    configure_logging,
    get_factory,
    get_logger,
    get_performance_logger,
    shutdown_logging,
)
from .formatters import JSONFormatter, TextFormatter, get_formatter
from .performance import PerformanceLogger, PerformanceMetrics, TimingContext, TimingMetrics
from .structured import LogContext, StructuredLogger

__all__ = [
    # Factory and configuration
    "LoggerFactory",
    "configure_logging",
    "get_factory",
    "get_logger",
    "get_performance_logger",
    "shutdown_logging",

    # Formatters
    "JSONFormatter",
    "TextFormatter",
    "get_formatter",

    # Performance logging
    "PerformanceLogger",
    "PerformanceMetrics",
    "TimingContext",
    "TimingMetrics",

    # Structured logging
    "StructuredLogger",
    "LogContext",
]
