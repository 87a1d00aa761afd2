"""Data model of a maintenance run.

Metrics, recommendations and results are plain dataclasses and enums; they
are created fresh for every run and only the MaintenanceReport outlives it
(as a JSON file).

Classes:
    StatisticsFreshness: Age class of the query planner statistics
    OperationKind: Maintenance operations, in execution order
    Priority: Recommendation priority
    OperationOutcome: Result of one operation
    RunMode: Interactive or unattended
    DatabaseMetrics: Physical facts about one database
    OperationRecommendation: One analyzer decision
    AnalysisResult: All analyzer decisions for one metrics snapshot
    OperationResult: Outcome of one executed operation
    IntegrityCheckResult: Outcome of ``PRAGMA integrity_check``
    MaintenanceReport: Full record of one run
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..core.utils import BYTES_PER_MB


class StatisticsFreshness(str, Enum):
    MISSING = "missing"
    FRESH = "fresh"
    MODERATE = "moderate"
    STALE = "stale"


class OperationKind(str, Enum):
    """Maintenance operations.

    Declaration order is the execution order: the WAL is merged before the
    statistics are rebuilt, and space is reclaimed before the optimizer
    hint runs on the compacted file.
    """

    WAL_CHECKPOINT = "WAL_CHECKPOINT"
    STATISTICS_REFRESH = "STATISTICS_REFRESH"
    TABLE_STATISTICS = "TABLE_STATISTICS"
    RECLAIM_SPACE = "RECLAIM_SPACE"
    OPTIMIZER_HINT = "OPTIMIZER_HINT"

    @property
    def execution_index(self) -> int:
        return list(OperationKind).index(self)

    @classmethod
    def in_execution_order(cls, kinds) -> List["OperationKind"]:
        """Deduplicate ``kinds`` and sort them into execution order."""
        return sorted(set(kinds), key=lambda kind: kind.execution_index)


OPERATION_ALIASES: Dict[str, OperationKind] = {
    "checkpoint": OperationKind.WAL_CHECKPOINT,
    "analyze": OperationKind.STATISTICS_REFRESH,
    "statistics": OperationKind.TABLE_STATISTICS,
    "vacuum": OperationKind.RECLAIM_SPACE,
    "optimize": OperationKind.OPTIMIZER_HINT,
}


def parse_operation(name: str) -> OperationKind:
    """Resolve a command-line operation name or enum name.

    Raises:
        ValueError: If the name is unknown
    """
    key = name.strip()
    if key.lower() in OPERATION_ALIASES:
        return OPERATION_ALIASES[key.lower()]
    try:
        return OperationKind(key.upper())
    except ValueError:
        known = sorted(OPERATION_ALIASES) + [kind.value for kind in OperationKind]
        raise ValueError(f"Unknown operation {name!r}; expected one of: {', '.join(known)}")


class Priority(str, Enum):
    NORMAL = "normal"
    HIGH = "high"


class OperationOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class RunMode(str, Enum):
    """How a run was triggered.

    Unattended runs (cron) never take risks an operator did not approve:
    space reclamation is skipped while the vault service is live.
    """

    INTERACTIVE = "interactive"
    UNATTENDED = "unattended"


@dataclass(frozen=True)
class DatabaseMetrics:
    """Physical facts about one SQLite database at one instant.

    Attributes:
        file_size_bytes: Size of the main database file
        logical_size_bytes: page_count * page_size
        page_count: Pages in the database
        page_size: Bytes per page
        freelist_count: Unused pages
        freelist_percent: freelist_count as a share of page_count
        fragmentation_ratio: file_size_bytes / logical_size_bytes
        wal_size_bytes: Size of the WAL sibling file (0 if absent)
        table_count: User tables
        index_count: User indexes
        journal_mode: Journal mode reported by SQLite
        statistics_freshness: Age class of sqlite_stat1
        database_path: Where the metrics were read from
        collected_at: When the metrics were read
    """

    file_size_bytes: int
    logical_size_bytes: int
    page_count: int
    page_size: int
    freelist_count: int
    freelist_percent: float
    fragmentation_ratio: float
    wal_size_bytes: int
    table_count: int
    journal_mode: str
    statistics_freshness: StatisticsFreshness
    index_count: int = 0
    database_path: Optional[Path] = None
    collected_at: Optional[datetime] = None

    @property
    def file_size_mb(self) -> float:
        return self.file_size_bytes / BYTES_PER_MB

    @property
    def wal_size_mb(self) -> float:
        return self.wal_size_bytes / BYTES_PER_MB

    @property
    def is_wal_mode(self) -> bool:
        return self.journal_mode.lower() == "wal"

    @property
    def fragmentation_level(self) -> str:
        """Coarse label used in summaries."""
        if self.fragmentation_ratio > 1.5:
            return "high"
        if self.fragmentation_ratio > 1.3:
            return "moderate"
        if self.fragmentation_ratio > 1.1:
            return "low"
        return "minimal"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "database_path": str(self.database_path) if self.database_path else None,
            "collected_at": self.collected_at.isoformat() if self.collected_at else None,
            "file_size_bytes": self.file_size_bytes,
            "logical_size_bytes": self.logical_size_bytes,
            "page_count": self.page_count,
            "page_size": self.page_size,
            "freelist_count": self.freelist_count,
            "freelist_percent": round(self.freelist_percent, 2),
            "fragmentation_ratio": round(self.fragmentation_ratio, 4),
            "fragmentation_level": self.fragmentation_level,
            "wal_size_bytes": self.wal_size_bytes,
            "table_count": self.table_count,
            "index_count": self.index_count,
            "journal_mode": self.journal_mode,
            "statistics_freshness": self.statistics_freshness.value,
        }


@dataclass(frozen=True)
class OperationRecommendation:
    kind: OperationKind
    priority: Priority
    reason: str

    def __str__(self) -> str:
        return f"{self.kind.value} ({self.priority.value}): {self.reason}"


@dataclass(frozen=True)
class AnalysisResult:
    """Ordered analyzer decisions for one metrics snapshot.

    An empty result means the database is well maintained.
    """

    metrics: DatabaseMetrics
    recommendations: Tuple[OperationRecommendation, ...] = ()

    @property
    def reasons(self) -> List[str]:
        return [rec.reason for rec in self.recommendations]

    @property
    def kinds(self) -> List[OperationKind]:
        return [rec.kind for rec in self.recommendations]

    @property
    def is_empty(self) -> bool:
        return not self.recommendations

    def get(self, kind: OperationKind) -> Optional[OperationRecommendation]:
        """Return the recommendation for ``kind``, if any."""
        for rec in self.recommendations:
            if rec.kind is kind:
                return rec
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metrics": self.metrics.to_dict(),
            "recommendations": [
                {"operation": rec.kind.value, "priority": rec.priority.value, "reason": rec.reason}
                for rec in self.recommendations
            ],
        }


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one maintenance operation.

    Attributes:
        kind: Operation that ran (or was skipped)
        outcome: success, failed or skipped
        duration: Seconds spent, 0.0 when skipped before starting
        detail: Human-readable reason or error text
        bytes_freed: Bytes released (checkpoint and reclaim only)
        backup_path: Dump written before reclaiming space
    """

    kind: OperationKind
    outcome: OperationOutcome
    duration: float = 0.0
    detail: Optional[str] = None
    bytes_freed: Optional[int] = None
    backup_path: Optional[Path] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "operation": self.kind.value,
            "outcome": self.outcome.value,
            "duration_seconds": round(self.duration, 3),
        }
        if self.detail is not None:
            data["detail"] = self.detail
        if self.bytes_freed is not None:
            data["bytes_freed"] = self.bytes_freed
        if self.backup_path is not None:
            data["backup_path"] = str(self.backup_path)
        return data


@dataclass(frozen=True)
class IntegrityCheckResult:
    passed: bool
    detail: str
    duration: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "detail": self.detail,
            "duration_seconds": round(self.duration, 3),
        }


class ReportStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class MaintenanceReport:
    """Full record of one maintenance run.

    Built up by the executor while the run progresses; ``status`` is
    derived, never stored: a run failed if its pre-flight check failed, any
    operation failed, or its post-flight check failed.
    """

    database_path: Path
    mode: RunMode
    started_at: datetime
    results: List[OperationResult] = field(default_factory=list)
    preflight: Optional[IntegrityCheckResult] = None
    postflight: Optional[IntegrityCheckResult] = None
    finished_at: Optional[datetime] = None
    trigger: str = "intelligent"
    analysis: Optional[AnalysisResult] = None

    @property
    def status(self) -> ReportStatus:
        if self.preflight is not None and not self.preflight.passed:
            return ReportStatus.FAILED
        if self.postflight is not None and not self.postflight.passed:
            return ReportStatus.FAILED
        if any(r.outcome is OperationOutcome.FAILED for r in self.results):
            return ReportStatus.FAILED
        return ReportStatus.SUCCESS

    @property
    def succeeded(self) -> bool:
        return self.status is ReportStatus.SUCCESS

    @property
    def duration(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def _count(self, outcome: OperationOutcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def success_count(self) -> int:
        return self._count(OperationOutcome.SUCCESS)

    @property
    def failed_count(self) -> int:
        return self._count(OperationOutcome.FAILED)

    @property
    def skipped_count(self) -> int:
        return self._count(OperationOutcome.SKIPPED)

    @property
    def backup_paths(self) -> List[Path]:
        return [r.backup_path for r in self.results if r.backup_path is not None]

    def result_for(self, kind: OperationKind) -> Optional[OperationResult]:
        for result in self.results:
            if result.kind is kind:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "database_path": str(self.database_path),
            "mode": self.mode.value,
            "trigger": self.trigger,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": round(self.duration, 3),
            "counts": {
                "total": len(self.results),
                "success": self.success_count,
                "failed": self.failed_count,
                "skipped": self.skipped_count,
            },
            "preflight_integrity": self.preflight.to_dict() if self.preflight else None,
            "postflight_integrity": self.postflight.to_dict() if self.postflight else None,
            "operations": [r.to_dict() for r in self.results],
            "backups": [str(p) for p in self.backup_paths],
            "analysis": self.analysis.to_dict() if self.analysis else None,
        }
