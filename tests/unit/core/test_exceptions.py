"""Unit tests for the VaultMaint exception hierarchy."""

import pytest

from vaultmaint.core.exceptions import (
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
    ScheduleValidationError,
    SchedulerError,
    ValidationError,
    VaultMaintException,
)


class TestVaultMaintException:
    """Test base VaultMaint exception class."""

    def test_basic_exception_creation(self):
        """Test basic exception creation with message only."""
        exc = VaultMaintException("Test error message")

        assert str(exc) == "VaultMaintException: Test error message"
        assert exc.message == "Test error message"
        assert exc.code == "VaultMaintException"
        assert exc.context == {}
        assert exc.cause is None

    def test_exception_with_code_context_and_cause(self):
        """Test exception creation with all structured fields."""
        cause = OSError("disk full")
        exc = VaultMaintException(
            "Backup failed",
            code=ErrorCodes.BACKUP_CREATION_FAILED,
            context={"destination": "/srv/backups/x.sql"},
            cause=cause,
        )

        assert str(exc) == "BACKUP_CREATION_FAILED: Backup failed"
        assert exc.context["destination"] == "/srv/backups/x.sql"
        assert exc.cause is cause

    def test_to_dict(self):
        """Test exception serialization."""
        exc = DatabaseNotFoundError(
            "Database not found: /srv/db.sqlite3",
            code=ErrorCodes.DATABASE_NOT_FOUND,
            context={"database": "/srv/db.sqlite3"},
            cause=FileNotFoundError("missing"),
        )

        assert exc.to_dict() == {
            "error_type": "DatabaseNotFoundError",
            "message": "Database not found: /srv/db.sqlite3",
            "code": "DATABASE_NOT_FOUND",
            "context": {"database": "/srv/db.sqlite3"},
            "cause": "missing",
        }

    def test_repr_contains_fields(self):
        """Test repr shows message, code and context."""
        exc = OperationError("ANALYZE failed", code="OPERATION_FAILED", context={"tables": ["users"]})
        text = repr(exc)

        assert text.startswith("OperationError(")
        assert "'ANALYZE failed'" in text
        assert "OPERATION_FAILED" in text
        assert "users" in text


class TestHierarchy:
    """Test the exception inheritance tree."""

    @pytest.mark.parametrize(
        "exc_class,parent",
        [
            (ValidationError, ConfigurationError),
            (ScheduleValidationError, ValidationError),
            (DatabaseNotFoundError, DatabaseError),
            (DatabaseInaccessibleError, DatabaseError),
            (IntegrityCheckError, MaintenanceError),
            (OperationError, MaintenanceError),
            (BackupError, MaintenanceError),
            (MaintenanceInProgressError, MaintenanceError),
            (SchedulerError, VaultMaintException),
        ],
    )
    def test_inheritance(self, exc_class, parent):
        """Test each exception derives from its category."""
        assert issubclass(exc_class, parent)
        assert issubclass(exc_class, VaultMaintException)

    def test_schedule_validation_error_is_a_configuration_error(self):
        """Test schedule validation errors can be caught as configuration errors."""
        with pytest.raises(ConfigurationError):
            raise ScheduleValidationError("bad cron", code=ErrorCodes.SCHEDULE_INVALID)

    def test_default_code_is_class_name(self):
        """Test the code defaults to the concrete class name."""
        assert BackupError("x").code == "BackupError"
        assert MaintenanceInProgressError("x").code == "MaintenanceInProgressError"
