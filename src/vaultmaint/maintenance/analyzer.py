"""Maintenance decision engine.

``analyze`` turns a DatabaseMetrics snapshot and a Thresholds value into
an ordered list of recommendations. It is a pure function: no I/O, no
clock, no logging. Callers log the decisions.

Rules are evaluated in a fixed order and all of them run:

1. Statistics: refresh when missing or stale, or when moderately old on a
   sizeable database; per-table statistics as well when many tables lack
   fresh statistics.
2. WAL: checkpoint when the WAL is critical in absolute terms, or
   significant relative to a database that is not large.
3. Reclaim: one RECLAIM_SPACE at most, from a first-match chain of tiers
   (critical fragmentation, fragmentation with free pages, modest
   fragmentation on a huge database, many free pages).
4. A reclaim on top of an unmerged WAL pulls in a checkpoint.
5. Optimizer hint once statistics exist on a database with real activity.

Example:
    >>> result = analyze(metrics, Thresholds())
    >>> [str(rec) for rec in result.recommendations]
    ['RECLAIM_SPACE (high): Critical fragmentation (ratio 1.60 > 1.50)']
"""

from typing import List

from ..config.models import Thresholds
from .models import (
    AnalysisResult,
    DatabaseMetrics,
    OperationKind,
    OperationRecommendation,
    Priority,
    StatisticsFreshness,
)

# Beyond this many tables per-table statistics are rebuilt as well
TABLE_STATISTICS_MIN_TABLES = 3


def _statistics_rules(metrics: DatabaseMetrics, thresholds: Thresholds) -> List[OperationRecommendation]:
    recommendations = []
    freshness = metrics.statistics_freshness

    if freshness is StatisticsFreshness.MISSING:
        reason = "No query planner statistics found"
    elif freshness is StatisticsFreshness.STALE:
        reason = f"Statistics older than {thresholds.statistics_stale_days:g} days"
    elif (
        freshness is StatisticsFreshness.MODERATE
        and metrics.file_size_mb > thresholds.db_size_sizeable_mb
    ):
        reason = (
            f"Statistics aging on a sizeable database "
            f"({metrics.file_size_mb:.1f}MB > {thresholds.db_size_sizeable_mb:g}MB)"
        )
    else:
        reason = None

    if reason is not None:
        recommendations.append(
            OperationRecommendation(OperationKind.STATISTICS_REFRESH, Priority.NORMAL, reason)
        )

    if metrics.table_count > TABLE_STATISTICS_MIN_TABLES and freshness in (
        StatisticsFreshness.MISSING,
        StatisticsFreshness.STALE,
    ):
        recommendations.append(
            OperationRecommendation(
                OperationKind.TABLE_STATISTICS,
                Priority.NORMAL,
                f"{metrics.table_count} tables without current statistics",
            )
        )

    return recommendations


def _wal_rule(metrics: DatabaseMetrics, thresholds: Thresholds) -> List[OperationRecommendation]:
    wal_mb = metrics.wal_size_mb

    if wal_mb > thresholds.wal_size_critical_mb:
        return [
            OperationRecommendation(
                OperationKind.WAL_CHECKPOINT,
                Priority.NORMAL,
                f"Large WAL needs merging ({wal_mb:.1f}MB > {thresholds.wal_size_critical_mb:g}MB)",
            )
        ]

    if wal_mb > thresholds.wal_size_warning_mb and metrics.file_size_mb < thresholds.db_size_large_mb:
        return [
            OperationRecommendation(
                OperationKind.WAL_CHECKPOINT,
                Priority.NORMAL,
                f"WAL significant relative to database size "
                f"({wal_mb:.1f}MB WAL, {metrics.file_size_mb:.1f}MB database)",
            )
        ]

    return []


def _reclaim_rule(metrics: DatabaseMetrics, thresholds: Thresholds) -> List[OperationRecommendation]:
    ratio = metrics.fragmentation_ratio
    freelist = metrics.freelist_percent

    if ratio > thresholds.fragmentation_critical:
        priority = Priority.HIGH
        reason = f"Critical fragmentation (ratio {ratio:.2f} > {thresholds.fragmentation_critical:.2f})"
    elif ratio > thresholds.fragmentation_warning and freelist > thresholds.freelist_warning_percent:
        priority = Priority.NORMAL
        reason = (
            f"Fragmentation with free pages "
            f"(ratio {ratio:.2f}, {freelist:.1f}% free pages)"
        )
    elif metrics.file_size_mb > thresholds.db_size_huge_mb and ratio > thresholds.fragmentation_modest:
        priority = Priority.NORMAL
        reason = (
            f"Modest fragmentation on a large database "
            f"(ratio {ratio:.2f}, {metrics.file_size_mb:.1f}MB)"
        )
    elif freelist > thresholds.freelist_critical_percent:
        priority = Priority.NORMAL
        reason = f"High free page share ({freelist:.1f}% > {thresholds.freelist_critical_percent:g}%)"
    else:
        return []

    return [OperationRecommendation(OperationKind.RECLAIM_SPACE, priority, reason)]


def _optimizer_rule(metrics: DatabaseMetrics, thresholds: Thresholds) -> List[OperationRecommendation]:
    if (
        metrics.statistics_freshness is not StatisticsFreshness.MISSING
        and metrics.file_size_mb > thresholds.db_size_minimal_activity_mb
    ):
        return [
            OperationRecommendation(
                OperationKind.OPTIMIZER_HINT,
                Priority.NORMAL,
                "Routine query planner optimization",
            )
        ]
    return []


def analyze(metrics: DatabaseMetrics, thresholds: Thresholds) -> AnalysisResult:
    """Decide which maintenance operations ``metrics`` warrant.

    Args:
        metrics: Snapshot from the collector
        thresholds: Decision thresholds

    Returns:
        AnalysisResult whose recommendations are in rule evaluation order;
        empty when the database is well maintained
    """
    recommendations: List[OperationRecommendation] = []
    recommendations.extend(_statistics_rules(metrics, thresholds))

    wal = _wal_rule(metrics, thresholds)
    recommendations.extend(wal)

    reclaim = _reclaim_rule(metrics, thresholds)
    if reclaim and not wal and metrics.wal_size_mb > thresholds.wal_size_warning_mb:
        recommendations.append(
            OperationRecommendation(
                OperationKind.WAL_CHECKPOINT,
                Priority.NORMAL,
                f"WAL must be merged before reclaiming space ({metrics.wal_size_mb:.1f}MB)",
            )
        )
    recommendations.extend(reclaim)

    recommendations.extend(_optimizer_rule(metrics, thresholds))

    return AnalysisResult(metrics=metrics, recommendations=tuple(recommendations))
