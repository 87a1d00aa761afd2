"""SQLite maintenance primitives.

Thin wrappers over the SQLite statements the executor orchestrates. They
take an open connection, raise ``sqlite3.Error`` on failure and leave
policy (ordering, skipping, recording) to the caller.
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, List, Optional, Tuple

from ..core.exceptions import BackupError, ErrorCodes
from ..core.utils import StringUtils, measure_time
from .models import IntegrityCheckResult


def wal_path_for(db_path: Path, suffix: str = "-wal") -> Path:
    return db_path.with_name(db_path.name + suffix)


def file_size(path: Path) -> int:
    """Size of ``path`` in bytes, 0 if it does not exist."""
    try:
        return path.stat().st_size
    except FileNotFoundError:
        return 0


@contextmanager
def open_read_only(db_path: Path, *, timeout: float = 30.0) -> Generator[sqlite3.Connection, None, None]:
    """Open ``db_path`` through a read-only URI and close it afterwards."""
    uri = db_path.resolve().as_uri() + "?mode=ro"
    conn = sqlite3.connect(uri, uri=True, timeout=timeout)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def open_read_write(db_path: Path, *, timeout: float = 30.0) -> Generator[sqlite3.Connection, None, None]:
    """Open ``db_path`` in autocommit mode (required by VACUUM) and close it afterwards.

    The database must already exist; SQLite is never allowed to create it.
    """
    uri = db_path.resolve().as_uri() + "?mode=rw"
    conn = sqlite3.connect(uri, uri=True, timeout=timeout, isolation_level=None)
    try:
        yield conn
    finally:
        conn.close()


def integrity_check(conn: sqlite3.Connection) -> IntegrityCheckResult:
    """Run ``PRAGMA integrity_check``.

    Corruption reported by SQLite, either as result rows or as a
    ``DatabaseError`` while reading, yields a failed result. Operational
    errors (locks, I/O) propagate.
    """
    with measure_time() as timer:
        try:
            rows = [row[0] for row in conn.execute("PRAGMA integrity_check").fetchall()]
        except sqlite3.OperationalError:
            raise
        except sqlite3.DatabaseError as e:
            rows = [str(e)]

    passed = rows == ["ok"]
    detail = "ok" if passed else "; ".join(rows)
    return IntegrityCheckResult(passed=passed, detail=detail, duration=timer.duration or 0.0)


def journal_mode(conn: sqlite3.Connection) -> str:
    return str(conn.execute("PRAGMA journal_mode").fetchone()[0]).lower()


def wal_checkpoint(conn: sqlite3.Connection, mode: str = "TRUNCATE") -> Tuple[bool, int, int]:
    """Checkpoint the WAL into the main database file.

    Returns:
        (busy, wal_frames, checkpointed_frames) as reported by SQLite
    """
    if mode not in ("PASSIVE", "FULL", "RESTART", "TRUNCATE"):
        raise ValueError(f"Unknown checkpoint mode: {mode}")
    busy, log_frames, checkpointed = conn.execute(f"PRAGMA wal_checkpoint({mode})").fetchone()
    return bool(busy), log_frames, checkpointed


def list_user_tables(conn: sqlite3.Connection) -> List[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master "
        "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
    ).fetchall()
    return [row[0] for row in rows]


def analyze(conn: sqlite3.Connection, table: Optional[str] = None) -> None:
    """Rebuild planner statistics, for one table or the whole database."""
    if table is None:
        conn.execute("ANALYZE")
    else:
        conn.execute(f"ANALYZE {StringUtils.quote_sql_identifier(table)}")


def vacuum(conn: sqlite3.Connection) -> None:
    conn.execute("VACUUM")


def optimize(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA optimize")


def dump_database(conn: sqlite3.Connection, destination: Path) -> Path:
    """Write a full logical SQL dump of the database to ``destination``.

    The dump is written to a temporary sibling and renamed into place, so
    a failed dump never leaves a truncated ``.sql`` file behind.

    Raises:
        BackupError: If the dump cannot be produced or written
    """
    partial = destination.with_name(destination.name + ".partial")
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        with open(partial, "w", encoding="utf-8") as f:
            for statement in conn.iterdump():
                f.write(statement)
                f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(partial, destination)
    except (OSError, sqlite3.Error) as e:
        if partial.exists():
            partial.unlink()
        raise BackupError(
            f"Database dump to {destination} failed: {e}",
            code=ErrorCodes.BACKUP_CREATION_FAILED,
            context={"destination": str(destination)},
            cause=e,
        )

    return destination
