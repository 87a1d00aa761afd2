"""Metrics collection for SQLite databases.

The collector opens the database read-only, runs a handful of PRAGMA and
catalog queries, and combines them with filesystem facts (file sizes,
modification times) into a DatabaseMetrics snapshot. It never writes.

Example:
    >>> collector = MetricsCollector(config)
    >>> metrics = collector.collect(Path("/srv/vault/db.sqlite3"))
    >>> metrics.fragmentation_ratio
    1.0421
"""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..config.models import MaintenanceConfig
from ..core.base import BaseComponent
from ..core.exceptions import DatabaseInaccessibleError, DatabaseNotFoundError, ErrorCodes
from .models import DatabaseMetrics, StatisticsFreshness
from .operations import integrity_check, open_read_only, wal_path_for

_USER_OBJECT_COUNT = (
    "SELECT count(*) FROM sqlite_master WHERE type = ? AND name NOT LIKE 'sqlite_%'"
)
_STATISTICS_TABLE = "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'sqlite_stat1'"


def fragmentation_ratio(file_size: int, page_count: int, page_size: int) -> float:
    """Ratio of on-disk size to logical size; exactly 1.0 for an empty database."""
    if page_count <= 0 or page_size <= 0:
        return 1.0
    return file_size / (page_count * page_size)


def freelist_percent(freelist_count: int, page_count: int) -> float:
    if page_count <= 0:
        return 0.0
    return freelist_count * 100.0 / page_count


class MetricsCollector(BaseComponent[MaintenanceConfig]):
    """Read-only metrics collector.

    Args:
        config: Maintenance configuration (database and threshold sections)
        clock: Returns the current time; injectable for freshness tests
    """

    component_name = "Collector"

    def __init__(
        self,
        config: MaintenanceConfig,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        super().__init__(config)
        self._clock = clock or datetime.now

    def collect(self, db_path: Optional[Path] = None) -> DatabaseMetrics:
        """Collect a fresh metrics snapshot.

        Args:
            db_path: Database file, defaults to the configured path

        Raises:
            DatabaseNotFoundError: If the database file does not exist
            DatabaseInaccessibleError: If the file exists but cannot be queried
        """
        path = Path(db_path or self.config.database.path)
        if not path.is_file():
            raise DatabaseNotFoundError(
                f"Database not found: {path}",
                code=ErrorCodes.DATABASE_NOT_FOUND,
                context={"database": str(path)},
            )

        now = self._clock()
        wal_path = wal_path_for(path, self.config.database.wal_suffix)

        try:
            with open_read_only(path, timeout=self.config.database.busy_timeout) as conn:
                page_count = conn.execute("PRAGMA page_count").fetchone()[0]
                page_size = conn.execute("PRAGMA page_size").fetchone()[0]
                freelist_count = conn.execute("PRAGMA freelist_count").fetchone()[0]
                journal_mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
                table_count = conn.execute(_USER_OBJECT_COUNT, ("table",)).fetchone()[0]
                index_count = conn.execute(_USER_OBJECT_COUNT, ("index",)).fetchone()[0]
                has_statistics = conn.execute(_STATISTICS_TABLE).fetchone() is not None
        except sqlite3.Error as e:
            raise DatabaseInaccessibleError(
                f"Cannot read metrics from {path}: {e}",
                code=ErrorCodes.METRICS_COLLECTION_FAILED,
                context={"database": str(path)},
                cause=e,
            )

        # Sizes are read after the connection is closed so that its own
        # shared-memory and WAL bookkeeping does not leak into them
        file_size = path.stat().st_size
        wal_size = wal_path.stat().st_size if wal_path.is_file() else 0

        metrics = DatabaseMetrics(
            file_size_bytes=file_size,
            logical_size_bytes=page_count * page_size,
            page_count=page_count,
            page_size=page_size,
            freelist_count=freelist_count,
            freelist_percent=freelist_percent(freelist_count, page_count),
            fragmentation_ratio=fragmentation_ratio(file_size, page_count, page_size),
            wal_size_bytes=wal_size,
            table_count=table_count,
            index_count=index_count,
            journal_mode=str(journal_mode).lower(),
            statistics_freshness=self._statistics_freshness(path, wal_path, has_statistics, now),
            database_path=path,
            collected_at=now,
        )

        self.logger.info(
            "Metrics collected",
            database=str(path),
            file_size_mb=round(metrics.file_size_mb, 2),
            fragmentation_ratio=round(metrics.fragmentation_ratio, 3),
            freelist_percent=round(metrics.freelist_percent, 1),
            wal_size_mb=round(metrics.wal_size_mb, 2),
            tables=table_count,
            journal_mode=metrics.journal_mode,
            statistics=metrics.statistics_freshness.value,
        )
        return metrics

    def _statistics_freshness(
        self,
        path: Path,
        wal_path: Path,
        has_statistics: bool,
        now: datetime,
    ) -> StatisticsFreshness:
        """Classify statistics age by the newest write to the database files."""
        if not has_statistics:
            return StatisticsFreshness.MISSING

        mtime = path.stat().st_mtime
        if wal_path.is_file():
            mtime = max(mtime, wal_path.stat().st_mtime)
        age = now - datetime.fromtimestamp(mtime)

        thresholds = self.config.thresholds
        if age < thresholds.statistics_fresh_age:
            return StatisticsFreshness.FRESH
        if age < thresholds.statistics_stale_age:
            return StatisticsFreshness.MODERATE
        return StatisticsFreshness.STALE

    def check_health(self, db_path: Optional[Path] = None) -> Dict[str, Any]:
        """Classify the database as healthy, corrupted, inaccessible or missing."""
        path = Path(db_path or self.config.database.path)
        if not path.is_file():
            return {"status": "missing", "detail": f"Database not found: {path}"}

        try:
            with open_read_only(path, timeout=self.config.database.busy_timeout) as conn:
                result = integrity_check(conn)
        except sqlite3.Error as e:
            return {"status": "inaccessible", "detail": str(e)}

        if result.passed:
            return {"status": "healthy", "detail": result.detail}
        return {"status": "corrupted", "detail": result.detail}
