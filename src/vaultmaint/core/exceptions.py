"""VaultMaint exception hierarchy.

This module defines the exception hierarchy for SQLite maintenance runs,
providing structured error handling with context and error codes so that
callers (the command line, the scheduler, external notifiers) can react to
each failure class differently.

Classes:
    VaultMaintException: Base exception for all VaultMaint operations
    ConfigurationError: Configuration related errors
    ValidationError: Data validation errors
    ScheduleValidationError: Rejected cron expressions
    DatabaseError: Database access errors
    DatabaseNotFoundError: Database file missing
    DatabaseInaccessibleError: Database present but not queryable
    MaintenanceError: Maintenance run errors
    IntegrityCheckError: Pre/post-flight integrity failures
    OperationError: Single maintenance operation failures
    BackupError: Backup creation failures
    MaintenanceInProgressError: Concurrent run refused
    SchedulerError: Schedule store failures

Example:
    >>> try:
    ...     collector.collect(db_path)
    ... except DatabaseNotFoundError as e:
    ...     logger.error("Database missing", error_code=e.code, context=e.context)
"""

from typing import Any, Dict, Optional


class VaultMaintException(Exception):
    """Base exception for all VaultMaint operations.

    This base class provides structured error handling with error codes,
    context information, and optional cause tracking.

    Attributes:
        code: Unique error code for categorization
        context: Additional context information about the error
        cause: Original exception that caused this error (if any)

    Example:
        >>> raise VaultMaintException(
        ...     "Operation failed",
        ...     code="OPERATION_FAILED",
        ...     context={"operation": "RECLAIM_SPACE", "database": "db.sqlite3"}
        ... )
    """

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        """Initialize VaultMaint exception.

        Args:
            message: Human-readable error description
            code: Unique error code for categorization (defaults to class name)
            context: Additional context information
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.code: str = code or self.__class__.__name__
        self.context: Dict[str, Any] = context or {}
        self.cause: Optional[Exception] = cause

    def __str__(self) -> str:
        """Return formatted error message with code."""
        return f"{self.code}: {super().__str__()}"

    def __repr__(self) -> str:
        """Return detailed representation of the exception."""
        return (
            f"{self.__class__.__name__}("
            f"message={super().__str__()!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r}, "
            f"cause={self.cause!r})"
        )

    @property
    def message(self) -> str:
        """Return the bare message without the error code prefix."""
        return super().__str__()

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(VaultMaintException):
    """Configuration related errors.

    Raised when configuration is invalid, missing, or cannot be processed,
    including malformed YAML files and unparseable environment overrides.
    """
    pass


class ValidationError(ConfigurationError):
    """Data validation errors.

    Raised when input data fails validation rules, such as inconsistent
    threshold tiers.
    """
    pass


class ScheduleValidationError(ValidationError):
    """Cron expression validation errors.

    Raised before any schedule store access; the store is left untouched.
    """
    pass


class DatabaseError(VaultMaintException):
    """Database access related errors.

    Base class for problems reaching the SQLite database file itself.
    """
    pass


class DatabaseNotFoundError(DatabaseError):
    """Database file does not exist.

    Fatal: no maintenance run is attempted.
    """
    pass


class DatabaseInaccessibleError(DatabaseError):
    """Database file exists but cannot be queried.

    Usually corruption or a held lock. Callers should run an integrity
    check rather than a maintenance run.
    """
    pass


class MaintenanceError(VaultMaintException):
    """Maintenance run related errors.

    Base class for errors raised while executing maintenance operations.
    """
    pass


class IntegrityCheckError(MaintenanceError):
    """Integrity check failures.

    Raised when ``PRAGMA integrity_check`` does not report ``ok``.
    """
    pass


class OperationError(MaintenanceError):
    """Single operation failures.

    Raised when the underlying SQLite call of one operation fails. The
    executor records these and continues with the remaining operations.
    """
    pass


class BackupError(MaintenanceError):
    """Backup operation errors.

    Raised when the logical dump taken before reclaiming space fails.
    """
    pass


class MaintenanceInProgressError(MaintenanceError):
    """Another maintenance run already holds the run lock."""
    pass


class ReportError(MaintenanceError):
    """Report file errors.

    Raised when the run report cannot be written or old reports cannot be
    removed. The maintenance itself has already happened.
    """
    pass


class SchedulerError(VaultMaintException):
    """Schedule store errors.

    Raised when reading or writing the external cron store fails.
    """
    pass


# Error code constants for common scenarios
class ErrorCodes:
    """Common error codes for VaultMaint exceptions."""

    # Configuration errors
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    CONFIG_INVALID = "CONFIG_INVALID"
    CONFIG_VALIDATION_FAILED = "CONFIG_VALIDATION_FAILED"

    # Database errors
    DATABASE_NOT_FOUND = "DATABASE_NOT_FOUND"
    DATABASE_INACCESSIBLE = "DATABASE_INACCESSIBLE"
    METRICS_COLLECTION_FAILED = "METRICS_COLLECTION_FAILED"

    # Maintenance errors
    INTEGRITY_CHECK_FAILED = "INTEGRITY_CHECK_FAILED"
    OPERATION_FAILED = "OPERATION_FAILED"
    BACKUP_CREATION_FAILED = "BACKUP_CREATION_FAILED"
    RUN_IN_PROGRESS = "RUN_IN_PROGRESS"
    UNKNOWN_OPERATION = "UNKNOWN_OPERATION"
    REPORT_WRITE_FAILED = "REPORT_WRITE_FAILED"

    # Scheduler errors
    SCHEDULE_INVALID = "SCHEDULE_INVALID"
    SCHEDULE_STORE_READ_FAILED = "SCHEDULE_STORE_READ_FAILED"
    SCHEDULE_STORE_WRITE_FAILED = "SCHEDULE_STORE_WRITE_FAILED"

    # Service probe errors
    SERVICE_PROBE_FAILED = "SERVICE_PROBE_FAILED"
