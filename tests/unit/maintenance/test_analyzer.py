"""Tests for the maintenance decision rules."""

import pytest

from vaultmaint.config.models import Thresholds
from vaultmaint.maintenance.analyzer import analyze
from vaultmaint.maintenance.models import (
    DatabaseMetrics,
    OperationKind,
    Priority,
    StatisticsFreshness,
)

MB = 1024 * 1024


def make_metrics(
    *,
    file_mb: float = 0.5,
    ratio: float = 1.0,
    freelist: float = 0.0,
    wal_mb: float = 0.0,
    tables: int = 4,
    freshness: StatisticsFreshness = StatisticsFreshness.FRESH,
) -> DatabaseMetrics:
    file_size = int(file_mb * MB)
    page_size = 4096
    page_count = max(1, int(file_size / ratio) // page_size)
    return DatabaseMetrics(
        file_size_bytes=file_size,
        logical_size_bytes=page_count * page_size,
        page_count=page_count,
        page_size=page_size,
        freelist_count=int(page_count * freelist / 100),
        freelist_percent=freelist,
        fragmentation_ratio=ratio,
        wal_size_bytes=int(wal_mb * MB),
        table_count=tables,
        journal_mode="wal",
        statistics_freshness=freshness,
    )


@pytest.fixture
def thresholds() -> Thresholds:
    return Thresholds()


class TestScenarios:
    """Reference decisions with default thresholds."""

    def test_critical_fragmentation(self, thresholds):
        """Test ratio 1.6 with a small WAL yields one high-priority reclaim."""
        result = analyze(make_metrics(ratio=1.6, freelist=5, wal_mb=0.2), thresholds)

        assert result.kinds == [OperationKind.RECLAIM_SPACE]
        assert result.recommendations[0].priority is Priority.HIGH
        assert "Critical fragmentation" in result.recommendations[0].reason

    def test_critical_wal(self, thresholds):
        """Test a 12MB WAL on a compact database yields only a checkpoint."""
        result = analyze(make_metrics(ratio=1.0, freelist=2, wal_mb=12), thresholds)

        assert result.kinds == [OperationKind.WAL_CHECKPOINT]
        assert "12.0MB" in result.reasons[0]

    def test_well_maintained(self, thresholds):
        """Test a healthy small database needs nothing."""
        result = analyze(make_metrics(), thresholds)

        assert result.is_empty
        assert result.recommendations == ()


class TestPurity:
    """analyze depends on its inputs only."""

    def test_identical_inputs_identical_output(self, thresholds):
        """Test repeated calls agree on kinds, priorities and reasons."""
        metrics = make_metrics(ratio=1.4, freelist=12, wal_mb=3, freshness=StatisticsFreshness.STALE)

        first = analyze(metrics, thresholds)
        second = analyze(metrics, thresholds)

        assert first == second
        assert first.reasons == second.reasons

    def test_custom_thresholds(self):
        """Test thresholds are honored rather than hard-coded."""
        metrics = make_metrics(wal_mb=12)

        assert analyze(metrics, Thresholds(wal_size_warning_mb=15, wal_size_critical_mb=20)).is_empty


class TestStatisticsRules:
    """Statistics refresh decisions."""

    def test_missing_statistics(self, thresholds):
        """Test missing statistics on a multi-table database."""
        result = analyze(make_metrics(freshness=StatisticsFreshness.MISSING), thresholds)

        assert result.kinds == [OperationKind.STATISTICS_REFRESH, OperationKind.TABLE_STATISTICS]
        assert result.reasons[0] == "No query planner statistics found"

    def test_stale_statistics_few_tables(self, thresholds):
        """Test per-table statistics need more than three tables."""
        result = analyze(make_metrics(tables=3, freshness=StatisticsFreshness.STALE), thresholds)

        assert result.kinds == [OperationKind.STATISTICS_REFRESH]

    def test_moderate_statistics_small_database(self, thresholds):
        """Test moderately old statistics are fine on a small database."""
        assert analyze(make_metrics(freshness=StatisticsFreshness.MODERATE), thresholds).is_empty

    def test_moderate_statistics_sizeable_database(self, thresholds):
        """Test moderately old statistics are refreshed on a sizeable database."""
        result = analyze(make_metrics(file_mb=20, freshness=StatisticsFreshness.MODERATE), thresholds)

        assert result.kinds == [OperationKind.STATISTICS_REFRESH, OperationKind.OPTIMIZER_HINT]


class TestWalRule:
    """WAL checkpoint decisions."""

    def test_warning_wal_on_small_database(self, thresholds):
        """Test a warning-sized WAL matters on a small database."""
        result = analyze(make_metrics(wal_mb=2), thresholds)

        assert result.kinds == [OperationKind.WAL_CHECKPOINT]
        assert "relative to database size" in result.reasons[0]

    def test_warning_wal_on_large_database(self, thresholds):
        """Test a warning-sized WAL is ignored on a large database."""
        result = analyze(make_metrics(file_mb=60, wal_mb=2), thresholds)

        assert OperationKind.WAL_CHECKPOINT not in result.kinds


class TestReclaimRule:
    """Space reclamation decisions."""

    def test_fragmentation_with_free_pages(self, thresholds):
        """Test warning ratio combined with free pages."""
        result = analyze(make_metrics(ratio=1.4, freelist=12), thresholds)

        rec = result.get(OperationKind.RECLAIM_SPACE)
        assert rec is not None
        assert rec.priority is Priority.NORMAL
        assert rec.reason.startswith("Fragmentation with free pages")

    def test_warning_ratio_without_free_pages(self, thresholds):
        """Test the warning ratio alone is not enough."""
        assert analyze(make_metrics(ratio=1.4, freelist=5), thresholds).is_empty

    def test_modest_fragmentation_on_huge_database(self, thresholds):
        """Test modest fragmentation matters on a huge database."""
        result = analyze(make_metrics(file_mb=150, ratio=1.25), thresholds)

        assert result.get(OperationKind.RECLAIM_SPACE).reason.startswith("Modest fragmentation")

    def test_high_free_page_share(self, thresholds):
        """Test free pages alone beyond the critical share."""
        result = analyze(make_metrics(freelist=20), thresholds)

        assert result.kinds == [OperationKind.RECLAIM_SPACE]
        assert result.reasons[0].startswith("High free page share")

    def test_single_reclaim_with_first_matching_reason(self, thresholds):
        """Test several firing tiers still produce one recommendation."""
        result = analyze(make_metrics(ratio=1.6, freelist=20), thresholds)

        assert result.kinds == [OperationKind.RECLAIM_SPACE]
        assert result.reasons[0].startswith("Critical fragmentation")

    def test_reclaim_pulls_in_checkpoint(self, thresholds):
        """Test a reclaim with an unmerged WAL also checkpoints first."""
        result = analyze(make_metrics(file_mb=60, ratio=1.6, wal_mb=5), thresholds)

        assert result.kinds == [
            OperationKind.WAL_CHECKPOINT,
            OperationKind.RECLAIM_SPACE,
            OperationKind.OPTIMIZER_HINT,
        ]
        assert "before reclaiming space" in result.reasons[0]


class TestOptimizerRule:
    """Optimizer hint decisions."""

    def test_active_database(self, thresholds):
        """Test the hint on a database with real activity."""
        assert analyze(make_metrics(file_mb=5), thresholds).kinds == [OperationKind.OPTIMIZER_HINT]

    def test_not_without_statistics(self, thresholds):
        """Test no hint while statistics are missing."""
        result = analyze(make_metrics(file_mb=5, freshness=StatisticsFreshness.MISSING), thresholds)

        assert OperationKind.OPTIMIZER_HINT not in result.kinds
