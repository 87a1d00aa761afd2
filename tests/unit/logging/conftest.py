"""Logging-specific test configuration and fixtures."""

from pathlib import Path

import pytest

from vaultmaint.logging.factory import LoggerFactory


@pytest.fixture
def temp_log_file(temp_dir: Path) -> Path:
    """Log file path inside the test's temporary directory."""
    return temp_dir / "logs" / "vaultmaint.log"


@pytest.fixture
def logger_factory():
    """Create clean logger factory for testing."""
    factory = LoggerFactory()
    yield factory
    # Cleanup after test
    factory.shutdown()
