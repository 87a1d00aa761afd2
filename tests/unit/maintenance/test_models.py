"""Tests for the maintenance data model."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from vaultmaint.maintenance.models import (
    DatabaseMetrics,
    IntegrityCheckResult,
    MaintenanceReport,
    OperationKind,
    OperationOutcome,
    OperationResult,
    ReportStatus,
    RunMode,
    StatisticsFreshness,
    parse_operation,
)

STARTED = datetime(2024, 5, 5, 3, 0, 0)


def _report(*results: OperationResult, preflight: bool = True, postflight: bool = True) -> MaintenanceReport:
    return MaintenanceReport(
        database_path=Path("/srv/db.sqlite3"),
        mode=RunMode.UNATTENDED,
        started_at=STARTED,
        results=list(results),
        preflight=IntegrityCheckResult(passed=preflight, detail="ok" if preflight else "page 3 corrupt"),
        postflight=IntegrityCheckResult(passed=postflight, detail="ok" if postflight else "page 9 corrupt"),
        finished_at=STARTED + timedelta(seconds=12),
    )


class TestOperationKind:
    """Test operation kinds and their ordering."""

    def test_execution_order(self):
        """Test the fixed execution order."""
        assert [kind.value for kind in OperationKind] == [
            "WAL_CHECKPOINT",
            "STATISTICS_REFRESH",
            "TABLE_STATISTICS",
            "RECLAIM_SPACE",
            "OPTIMIZER_HINT",
        ]

    def test_in_execution_order_sorts_and_deduplicates(self):
        """Test arbitrary input collapses into execution order."""
        kinds = OperationKind.in_execution_order(
            [
                OperationKind.OPTIMIZER_HINT,
                OperationKind.WAL_CHECKPOINT,
                OperationKind.OPTIMIZER_HINT,
                OperationKind.STATISTICS_REFRESH,
            ]
        )

        assert kinds == [
            OperationKind.WAL_CHECKPOINT,
            OperationKind.STATISTICS_REFRESH,
            OperationKind.OPTIMIZER_HINT,
        ]


class TestParseOperation:
    """Test command line operation names."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("checkpoint", OperationKind.WAL_CHECKPOINT),
            ("analyze", OperationKind.STATISTICS_REFRESH),
            ("statistics", OperationKind.TABLE_STATISTICS),
            ("vacuum", OperationKind.RECLAIM_SPACE),
            ("optimize", OperationKind.OPTIMIZER_HINT),
            ("VACUUM", OperationKind.RECLAIM_SPACE),
            ("reclaim_space", OperationKind.RECLAIM_SPACE),
            ("WAL_CHECKPOINT", OperationKind.WAL_CHECKPOINT),
        ],
    )
    def test_known_names(self, name, expected):
        """Test aliases and enum names resolve."""
        assert parse_operation(name) is expected

    def test_unknown_name(self):
        """Test unknown names list the accepted ones."""
        with pytest.raises(ValueError, match="checkpoint"):
            parse_operation("defrag")


class TestDatabaseMetrics:
    """Test derived metric properties."""

    def _metrics(self, **overrides) -> DatabaseMetrics:
        values = dict(
            file_size_bytes=2 * 1024 * 1024,
            logical_size_bytes=1024 * 1024,
            page_count=256,
            page_size=4096,
            freelist_count=16,
            freelist_percent=6.25,
            fragmentation_ratio=2.0,
            wal_size_bytes=512 * 1024,
            table_count=4,
            journal_mode="wal",
            statistics_freshness=StatisticsFreshness.FRESH,
        )
        values.update(overrides)
        return DatabaseMetrics(**values)

    def test_sizes_and_mode(self):
        """Test megabyte conversions and WAL detection."""
        metrics = self._metrics()

        assert metrics.file_size_mb == 2.0
        assert metrics.wal_size_mb == 0.5
        assert metrics.is_wal_mode
        assert not self._metrics(journal_mode="delete").is_wal_mode

    @pytest.mark.parametrize(
        "ratio,level",
        [(1.0, "minimal"), (1.2, "low"), (1.4, "moderate"), (1.6, "high")],
    )
    def test_fragmentation_level(self, ratio, level):
        """Test coarse fragmentation labels."""
        assert self._metrics(fragmentation_ratio=ratio).fragmentation_level == level

    def test_to_dict(self):
        """Test serialization of enum and optional fields."""
        data = self._metrics().to_dict()

        assert data["statistics_freshness"] == "fresh"
        assert data["database_path"] is None
        assert data["fragmentation_level"] == "high"


class TestMaintenanceReport:
    """Test report status derivation and serialization."""

    def test_success(self):
        """Test skipped operations do not fail a run."""
        report = _report(
            OperationResult(OperationKind.WAL_CHECKPOINT, OperationOutcome.SUCCESS, 0.1),
            OperationResult(OperationKind.RECLAIM_SPACE, OperationOutcome.SKIPPED, detail="service running"),
        )

        assert report.status is ReportStatus.SUCCESS
        assert report.succeeded
        assert report.success_count == 1
        assert report.skipped_count == 1
        assert report.duration == 12.0

    def test_failed_operation_fails_run(self):
        """Test one failed operation fails the run."""
        report = _report(OperationResult(OperationKind.OPTIMIZER_HINT, OperationOutcome.FAILED))
        assert report.status is ReportStatus.FAILED

    def test_failed_integrity_checks_fail_run(self):
        """Test either integrity check failing fails the run."""
        assert _report(preflight=False).status is ReportStatus.FAILED
        assert _report(postflight=False).status is ReportStatus.FAILED

    def test_unfinished_duration(self):
        """Test a report without an end has zero duration."""
        report = MaintenanceReport(Path("db"), RunMode.INTERACTIVE, STARTED)
        assert report.duration == 0.0
        assert report.to_dict()["finished_at"] is None

    def test_backups_and_lookup(self):
        """Test backup paths and result lookup."""
        reclaim = OperationResult(
            OperationKind.RECLAIM_SPACE,
            OperationOutcome.SUCCESS,
            bytes_freed=8192,
            backup_path=Path("/srv/backups/b.sql"),
        )
        report = _report(reclaim)

        assert report.backup_paths == [Path("/srv/backups/b.sql")]
        assert report.result_for(OperationKind.RECLAIM_SPACE) is reclaim
        assert report.result_for(OperationKind.WAL_CHECKPOINT) is None

    def test_to_dict(self):
        """Test the persisted report layout."""
        report = _report(
            OperationResult(OperationKind.WAL_CHECKPOINT, OperationOutcome.SUCCESS, 0.25, bytes_freed=4096),
            OperationResult(OperationKind.OPTIMIZER_HINT, OperationOutcome.FAILED, detail="locked"),
        )
        data = report.to_dict()

        assert data["status"] == "failed"
        assert data["mode"] == "unattended"
        assert data["duration_seconds"] == 12.0
        assert data["counts"] == {"total": 2, "success": 1, "failed": 1, "skipped": 0}
        assert data["preflight_integrity"]["passed"] is True
        assert data["operations"][0] == {
            "operation": "WAL_CHECKPOINT",
            "outcome": "success",
            "duration_seconds": 0.25,
            "bytes_freed": 4096,
        }
        assert data["operations"][1]["detail"] == "locked"
        assert data["analysis"] is None
