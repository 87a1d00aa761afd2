"""Maintenance engine: one run from metrics to report.

The engine wires collector, analyzer, executor and reporter together and
holds the run lock for the duration of every mutating run. The dry run
(``analyze``) takes no lock and never writes.

Example:
    >>> engine = MaintenanceEngine(load_config())
    >>> engine.analyze().kinds
    [<OperationKind.WAL_CHECKPOINT: 'WAL_CHECKPOINT'>]
    >>> report = engine.run_intelligent(RunMode.UNATTENDED)
"""

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Generator, Iterable, Optional

from ..config.models import MaintenanceConfig
from ..core.base import BaseComponent
from ..core.exceptions import DatabaseError, DatabaseInaccessibleError, ErrorCodes, IntegrityCheckError
from .analyzer import analyze
from .executor import MaintenanceExecutor
from .lock import RunLock
from .metrics import MetricsCollector
from .models import AnalysisResult, DatabaseMetrics, MaintenanceReport, OperationKind, RunMode
from .reporter import LoggingNotifier, MaintenanceReporter, NotificationStatus, Notifier
from .service import DockerServiceProbe, ServiceProbe


class MaintenanceEngine(BaseComponent[MaintenanceConfig]):
    """Orchestrates maintenance runs for one database.

    Args:
        config: Maintenance configuration
        service_probe: Vault liveness probe, defaults to the docker probe
        notifier: Receives unattended-run notifications
        clock: Returns the current time
    """

    component_name = "Engine"

    def __init__(
        self,
        config: MaintenanceConfig,
        *,
        service_probe: Optional[ServiceProbe] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        super().__init__(config)
        probe = service_probe if service_probe is not None else DockerServiceProbe(config.service)
        self.collector = MetricsCollector(config, clock=clock)
        self.executor = MaintenanceExecutor(config, service_probe=probe, clock=clock)
        self.reporter = MaintenanceReporter(config.reports, clock=clock)
        self.notifier = notifier if notifier is not None else LoggingNotifier()

    @property
    def database_path(self) -> Path:
        return self.config.database.path

    def analyze(self) -> AnalysisResult:
        """Collect metrics and decide, without changing anything.

        Raises:
            DatabaseNotFoundError: If the database file does not exist
            DatabaseInaccessibleError: If the database cannot be queried
            IntegrityCheckError: If the database cannot be queried because it is corrupt
        """
        metrics = self._collect()
        result = analyze(metrics, self.config.thresholds)

        if result.is_empty:
            self.logger.info("Database well maintained, no operations needed")
        for rec in result.recommendations:
            self.logger.info(
                "Operation recommended",
                operation=rec.kind.value,
                priority=rec.priority.value,
                reason=rec.reason,
            )
        return result

    def run_intelligent(self, mode: RunMode) -> MaintenanceReport:
        """Run only the operations the analyzer recommends."""
        with self._guarded(mode):
            analysis = self.analyze()
            report = self.executor.execute(
                analysis.recommendations, mode, db_path=self.database_path, trigger="intelligent"
            )
            report.analysis = analysis
            return self._finish(report)

    def run_comprehensive(self, mode: RunMode) -> MaintenanceReport:
        """Run every operation regardless of the analysis."""
        return self._run_forced(list(OperationKind), mode, trigger="comprehensive")

    def run_operation(self, kind: OperationKind, mode: RunMode) -> MaintenanceReport:
        """Run a single operation, still bracketed by integrity checks."""
        return self._run_forced([kind], mode, trigger=f"single:{kind.value}")

    def _run_forced(self, kinds: Iterable[OperationKind], mode: RunMode, *, trigger: str) -> MaintenanceReport:
        with self._guarded(mode):
            # Collect first so an unreadable database aborts before any change
            self._collect()
            report = self.executor.execute(kinds, mode, db_path=self.database_path, trigger=trigger)
            return self._finish(report)

    def _collect(self) -> DatabaseMetrics:
        """Collect metrics, telling corruption apart from other read failures."""
        try:
            return self.collector.collect(self.database_path)
        except DatabaseInaccessibleError as e:
            health = self.collector.check_health(self.database_path)
            if health["status"] != "corrupted":
                raise
            self.logger.error("Database failed its integrity check", detail=health["detail"])
            raise IntegrityCheckError(
                f"Integrity check failed for {self.database_path}: {health['detail']}",
                code=ErrorCodes.INTEGRITY_CHECK_FAILED,
                context={"database": str(self.database_path)},
                cause=e,
            )

    def _finish(self, report: MaintenanceReport) -> MaintenanceReport:
        try:
            self.reporter.record(report)
            self.reporter.cleanup_old_reports()
        finally:
            # The run already happened; cron still hears about it
            if report.mode is RunMode.UNATTENDED:
                self.reporter.notify(report, self.notifier)
        return report

    @contextmanager
    def _guarded(self, mode: RunMode) -> Generator[None, None, None]:
        """Hold the run lock; tell the notifier when an unattended run finds the database unusable."""
        with RunLock(self.database_path, self.config.lock.directory):
            try:
                yield
            except DatabaseError as e:
                if mode is RunMode.UNATTENDED:
                    self.notifier.notify(NotificationStatus.FAILED, f"Database not accessible: {e.message}")
                raise
            except IntegrityCheckError as e:
                if mode is RunMode.UNATTENDED:
                    self.notifier.notify(NotificationStatus.FAILED, e.message)
                raise
