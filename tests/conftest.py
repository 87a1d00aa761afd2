"""Pytest configuration and shared fixtures.

This module provides pytest configuration and shared fixtures for all tests
in the VaultMaint test suite: temporary SQLite databases in the shapes the
maintenance engine cares about, configurations rooted in a temporary
directory, and in-memory collaborators.
"""

import sqlite3
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Callable, Generator, Iterator

import pytest
import structlog

from vaultmaint.config.models import MaintenanceConfig
from vaultmaint.logging import get_factory
from vaultmaint.maintenance.scheduler import InMemoryScheduleStore
from vaultmaint.maintenance.service import StaticServiceProbe

FIXED_NOW = datetime(2024, 5, 5, 3, 0, 1)


def _configure_test_logging() -> None:
    """Suppress log output; events are captured and dropped."""
    structlog.configure(
        processors=[structlog.testing.LogCapture()],
        wrapper_class=structlog.BoundLogger,
        logger_factory=structlog.testing.ReturnLoggerFactory(),
        cache_logger_on_first_use=True,
    )


_configure_test_logging()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock returning the same instant on every call."""
    return lambda: FIXED_NOW


@pytest.fixture
def make_config(temp_dir: Path) -> Callable[..., MaintenanceConfig]:
    """Factory for configurations whose directories all live in ``temp_dir``.

    Keyword arguments are section dictionaries merged over the defaults,
    e.g. ``make_config(db_path, thresholds={"wal_size_critical_mb": 20})``.
    """

    def _make(db_path: Path, **sections: dict) -> MaintenanceConfig:
        data = {
            "database": {"path": db_path, "busy_timeout": 5},
            "backup": {"directory": temp_dir / "backups"},
            "reports": {"directory": temp_dir / "reports"},
            "scheduler": {"snapshot_dir": temp_dir / "cron_snapshots"},
            "lock": {"directory": temp_dir / "locks"},
            "logging": {"console_output": False},
        }
        for section, values in sections.items():
            data[section] = {**data.get(section, {}), **values}
        return MaintenanceConfig(**data)

    return _make


def _create_vault_schema(conn: sqlite3.Connection, rows: int) -> None:
    conn.executescript(
        """
        CREATE TABLE users (uuid TEXT PRIMARY KEY, email TEXT NOT NULL, name TEXT);
        CREATE TABLE ciphers (uuid TEXT PRIMARY KEY, user_uuid TEXT, data TEXT);
        CREATE TABLE folders (uuid TEXT PRIMARY KEY, user_uuid TEXT, name TEXT);
        CREATE TABLE devices (uuid TEXT PRIMARY KEY, user_uuid TEXT, name TEXT);
        CREATE INDEX idx_ciphers_user ON ciphers(user_uuid);
        """
    )
    conn.executemany(
        "INSERT INTO users VALUES (?, ?, ?)",
        [(f"user-{i}", f"user{i}@example.org", f"User {i}") for i in range(10)],
    )
    conn.executemany(
        "INSERT INTO ciphers VALUES (?, ?, ?)",
        [(f"cipher-{i}", f"user-{i % 10}", "x" * 200) for i in range(rows)],
    )


@pytest.fixture
def rollback_db(temp_dir: Path) -> Path:
    """Small database in rollback-journal mode with a vault-like schema."""
    path = temp_dir / "db.sqlite3"
    conn = sqlite3.connect(path)
    try:
        _create_vault_schema(conn, rows=200)
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
def fragmented_db(temp_dir: Path) -> Path:
    """Rollback-journal database where most pages are on the freelist.

    Stays well below one megabyte so that size-driven rules stay quiet.
    """
    path = temp_dir / "fragmented.sqlite3"
    conn = sqlite3.connect(path)
    try:
        _create_vault_schema(conn, rows=2000)
        conn.commit()
        conn.execute("DELETE FROM ciphers WHERE rowid > 200")
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
def wal_db(temp_dir: Path) -> Iterator[Path]:
    """WAL-mode database with uncheckpointed frames.

    A writer connection stays open for the duration of the test so that
    the WAL file is not folded back on close.
    """
    path = temp_dir / "wal.sqlite3"
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA wal_autocheckpoint=0")
    _create_vault_schema(conn, rows=500)
    conn.commit()
    try:
        yield path
    finally:
        conn.close()


@pytest.fixture
def corrupted_db(temp_dir: Path) -> Path:
    """A file that is not an SQLite database."""
    path = temp_dir / "corrupted.sqlite3"
    path.write_bytes(b"this is not an sqlite database" * 200)
    return path


@pytest.fixture
def stopped_service() -> StaticServiceProbe:
    return StaticServiceProbe(running=False)


@pytest.fixture
def running_service() -> StaticServiceProbe:
    return StaticServiceProbe(running=True)


@pytest.fixture
def schedule_store() -> InMemoryScheduleStore:
    """Cron store holding one unrelated entry."""
    return InMemoryScheduleStore(["*/5 * * * * /usr/local/bin/backup-photos # photos"])


class RecordingNotifier:
    """Notifier collecting ``(status, message)`` pairs."""

    def __init__(self) -> None:
        self.notifications = []

    def notify(self, status: str, message: str) -> None:
        self.notifications.append((status, message))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


# Pytest markers for different test categories
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "database: marks tests working on real SQLite files"
    )


# Auto-mark tests based on their location
def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    tests_root = Path(__file__).parent
    for item in items:
        test_path = Path(str(item.fspath)).relative_to(tests_root)

        if test_path.parts[0] == "unit":
            item.add_marker(pytest.mark.unit)

        if "maintenance" in test_path.parts:
            item.add_marker(pytest.mark.database)


@pytest.fixture(autouse=True)
def reset_logging():
    """Restore the capturing structlog setup after tests that configure logging."""
    yield

    get_factory().shutdown()
    structlog.reset_defaults()
    _configure_test_logging()
