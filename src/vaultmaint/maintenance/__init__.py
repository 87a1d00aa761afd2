"""SQLite intelligent maintenance.

Modules:
    models: Metrics, recommendations, results and reports
    metrics: Read-only metrics collection
    analyzer: Decision rules
    operations: SQLite maintenance primitives
    executor: Ordered, integrity-checked execution
    service: Vault liveness probes
    lock: Per-database run lock
    scheduler: Cron scheduling
    reporter: Reports and notifications
    engine: One run from metrics to report
"""

from .analyzer import analyze
from .engine import MaintenanceEngine
from .executor import MaintenanceExecutor
from .lock import RunLock
from .metrics import MetricsCollector
from .models import (
    AnalysisResult,
    DatabaseMetrics,
    IntegrityCheckResult,
    MaintenanceReport,
    OperationKind,
    OperationOutcome,
    OperationRecommendation,
    OperationResult,
    Priority,
    ReportStatus,
    RunMode,
    StatisticsFreshness,
    parse_operation,
)
from .reporter import LoggingNotifier, MaintenanceReporter, NotificationStatus, Notifier
from .scheduler import (
    CronExpression,
    CrontabScheduleStore,
    InMemoryScheduleStore,
    MaintenanceScheduler,
    ScheduleStatus,
    ScheduleStore,
)
from .service import DockerServiceProbe, ServiceProbe, StaticServiceProbe

__all__ = [
    # Data model
    "AnalysisResult",
    "DatabaseMetrics",
    "IntegrityCheckResult",
    "MaintenanceReport",
    "OperationKind",
    "OperationOutcome",
    "OperationRecommendation",
    "OperationResult",
    "Priority",
    "ReportStatus",
    "RunMode",
    "StatisticsFreshness",
    "parse_operation",

    # Components
    "analyze",
    "MaintenanceEngine",
    "MaintenanceExecutor",
    "MetricsCollector",
    "RunLock",

    # Reporting
    "LoggingNotifier",
    "MaintenanceReporter",
    "NotificationStatus",
    "Notifier",

    # Scheduling
    "CronExpression",
    "CrontabScheduleStore",
    "InMemoryScheduleStore",
    "MaintenanceScheduler",
    "ScheduleStatus",
    "ScheduleStore",

    # Service probes
    "DockerServiceProbe",
    "ServiceProbe",
    "StaticServiceProbe",
]
