"""Logger factory and configuration for VaultMaint.

This module provides centralized logger creation and configuration of
both structlog and the standard library handlers it renders through.

Classes:
    LoggerFactory: Main logger factory and configuration manager

Functions:
    configure_logging: Configure logging system globally
    get_logger: Convenience function for getting loggers
    get_performance_logger: Convenience function for performance loggers
    shutdown_logging: Flush and close all handlers

Example:
    >>> from vaultmaint.logging import get_logger, configure_logging
    >>> configure_logging(LoggingConfig(level="INFO", format="json"))
    >>> logger = get_logger(__name__)
    >>> logger.info("Maintenance started", database="db.sqlite3")
"""

import logging
import logging.handlers
import sys
from typing import Dict, Optional

import structlog

from ..config.models import LoggingConfig
from .formatters import get_formatter
from .performance import PerformanceLogger
from .structured import StructuredLogger


class LoggerFactory:
    """Factory for creating and configuring VaultMaint loggers.

    Attributes:
        config: Active logging configuration
        initialized: Whether the logging system has been configured

    Example:
        >>> factory = LoggerFactory()
        >>> factory.configure_from_config(LoggingConfig(level="DEBUG"))
        >>> logger = factory.get_logger("vaultmaint.scheduler")
        >>> perf_logger = factory.get_performance_logger("maintenance")
    """

    def __init__(self, config: Optional[LoggingConfig] = None) -> None:
        """Initialize logger factory.

        Args:
            config: Default logging configuration
        """
        self.config = config or LoggingConfig()
        self.initialized = False
        self._loggers: Dict[str, StructuredLogger] = {}
        self._performance_loggers: Dict[str, PerformanceLogger] = {}
        self._handlers: list = []

    def configure_from_config(self, logging_config: LoggingConfig) -> None:
        """(Re)configure the logging system from a LoggingConfig instance."""
        self.config = logging_config
        self.initialized = False
        self._configure_logging_system()

    def _configure_logging_system(self) -> None:
        if self.initialized:
            return

        self._configure_stdlib_logging()
        self._configure_structlog()

        for logger in self._loggers.values():
            logger.set_level(self.config.level)

        self.initialized = True

    def _configure_stdlib_logging(self) -> None:
        """Install console and rotating file handlers on the root logger."""
        root_logger = logging.getLogger()
        level = getattr(logging, self.config.level)
        root_logger.setLevel(level)

        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

        if self.config.console_output:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level)
            console_handler.setFormatter(get_formatter(self.config.format))
            self._handlers.append(console_handler)

        if self.config.file_path is not None:
            file_path = self.config.file_path
            file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=str(file_path),
                maxBytes=self.config.max_file_size,
                backupCount=self.config.backup_count,
            )
            file_handler.setLevel(level)
            # Files are read by machines; always JSON
            file_handler.setFormatter(get_formatter("json"))
            self._handlers.append(file_handler)

        for handler in self._handlers:
            root_logger.addHandler(handler)

    def _configure_structlog(self) -> None:
        """Route structlog events through the standard library handlers."""
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.UnicodeDecoder(),
                structlog.stdlib.render_to_log_kwargs,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=False,
        )

    def get_logger(self, name: str, *, level: Optional[str] = None) -> StructuredLogger:
        """Get or create a structured logger.

        Loggers requested before any explicit configuration reuse whatever
        structlog configuration is already active (tests install a capturing
        one); only an unconfigured structlog triggers the default setup.

        Args:
            name: Logger name (typically module name)
            level: Override the configured log level
        """
        if not self.initialized and not structlog.is_configured():
            self._configure_logging_system()

        cache_key = f"{name}_{level}"
        if cache_key in self._loggers:
            return self._loggers[cache_key]

        logger = StructuredLogger(name=name, level=level or self.config.level)
        self._loggers[cache_key] = logger
        return logger

    def get_performance_logger(self, name: str, *, auto_log: bool = True) -> PerformanceLogger:
        """Get or create a performance logger."""
        cache_key = f"{name}_{auto_log}"
        if cache_key in self._performance_loggers:
            return self._performance_loggers[cache_key]

        perf_logger = PerformanceLogger(
            name=name,
            auto_log=auto_log,
            logger=self.get_logger(f"vaultmaint.perf.{name}"),
        )
        self._performance_loggers[cache_key] = perf_logger
        return perf_logger

    def shutdown(self) -> None:
        """Flush and detach handlers and clear logger caches."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            handler.flush()
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

        self._loggers.clear()
        self._performance_loggers.clear()
        self.initialized = False

    def __repr__(self) -> str:
        return (
            f"LoggerFactory("
            f"level={self.config.level!r}, "
            f"format={self.config.format!r}, "
            f"initialized={self.initialized})"
        )


# Global logger factory instance
_global_factory = LoggerFactory()


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure VaultMaint logging globally.

    Args:
        config: Logging configuration section, defaults to LoggingConfig()

    Example:
        >>> configure_logging(LoggingConfig(level="DEBUG", format="json", file_path="/var/log/vaultmaint.log"))
    """
    _global_factory.configure_from_config(config or LoggingConfig())


def get_logger(name: str, *, level: Optional[str] = None) -> StructuredLogger:
    """Get or create a structured logger using the global factory.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Report written", path="/srv/reports/maintenance-report-20240505_030001.json")
    """
    return _global_factory.get_logger(name, level=level)


def get_performance_logger(name: str, *, auto_log: bool = True) -> PerformanceLogger:
    """Get or create a performance logger using the global factory."""
    return _global_factory.get_performance_logger(name, auto_log=auto_log)


def get_factory() -> LoggerFactory:
    """Get the global logger factory instance."""
    return _global_factory


def shutdown_logging() -> None:
    """Shutdown the global logging system and clean up resources."""
    _global_factory.shutdown()
