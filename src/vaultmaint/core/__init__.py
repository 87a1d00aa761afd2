"""VaultMaint core infrastructure.

This package provides the foundational components for the maintenance
engine including the component base class, exception handling, and
utilities.

Modules:
    base: Component base class
    exceptions: Exception hierarchy
    utils: Formatting, timing and dictionary helpers

Example:
    >>> from vaultmaint.core import BaseComponent
    >>> from vaultmaint.core.exceptions import DatabaseNotFoundError
    >>> from vaultmaint.core.utils import measure_time
"""

from .base import BaseComponent
from .exceptions import (
    BackupError,
    ConfigurationError,
    DatabaseError,
    DatabaseInaccessibleError,
    DatabaseNotFoundError,
    ErrorCodes,
    IntegrityCheckError,
    MaintenanceError,
    MaintenanceInProgressError,
    OperationError,
    ReportError,
    ScheduleValidationError,
    SchedulerError,
    ValidationError,
    VaultMaintException,
)
from .utils import (
    BYTES_PER_MB,
    DictUtils,
    FormatUtils,
    StringUtils,
    TimerContext,
    measure_time,
)

__all__ = [
    # Base classes
    "BaseComponent",

    # Exceptions
    "VaultMaintException",
    "ConfigurationError",
    "ValidationError",
    "ScheduleValidationError",
    "DatabaseError",
    "DatabaseNotFoundError",
    "DatabaseInaccessibleError",
    "MaintenanceError",
    "IntegrityCheckError",
    "OperationError",
    "BackupError",
    "MaintenanceInProgressError",
    "ReportError",
    "SchedulerError",
    "ErrorCodes",

    # Utilities
    "BYTES_PER_MB",
    "DictUtils",
    "FormatUtils",
    "StringUtils",
    "TimerContext",
    "measure_time",
]
