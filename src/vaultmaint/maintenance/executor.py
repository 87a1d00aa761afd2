"""Operation executor.

Runs a set of maintenance operations against one database in the fixed
execution order, bracketed by integrity checks:

    pre-flight integrity check
    WAL_CHECKPOINT -> STATISTICS_REFRESH -> TABLE_STATISTICS
        -> RECLAIM_SPACE -> OPTIMIZER_HINT
    post-flight integrity check

A failed pre-flight check aborts before anything is modified. A failure in
one operation is recorded and the remaining operations still run. Space
is only reclaimed after a logical dump has been written, and never while
the vault service is live in an unattended run.

Example:
    >>> executor = MaintenanceExecutor(config, service_probe=DockerServiceProbe())
    >>> report = executor.execute(analysis.recommendations, RunMode.UNATTENDED)
    >>> report.status
    <ReportStatus.SUCCESS: 'success'>
"""

import dataclasses
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Union

from ..config.models import MaintenanceConfig
from ..core.base import BaseComponent
from ..core.exceptions import (
    BackupError,
    DatabaseInaccessibleError,
    DatabaseNotFoundError,
    ErrorCodes,
    OperationError,
    VaultMaintException,
)
from ..core.utils import FormatUtils
from ..logging import StructuredLogger, get_performance_logger
from . import operations
from .models import (
    IntegrityCheckResult,
    MaintenanceReport,
    OperationKind,
    OperationOutcome,
    OperationRecommendation,
    OperationResult,
    RunMode,
)
from .service import ServiceProbe

Handler = Callable[[sqlite3.Connection, RunMode], OperationResult]


class MaintenanceExecutor(BaseComponent[MaintenanceConfig]):
    """Executes maintenance operations in a safe order.

    Args:
        config: Maintenance configuration
        service_probe: Answers whether the vault service is live
        clock: Returns the current time; used for report timestamps and
            backup file names
    """

    component_name = "Executor"

    def __init__(
        self,
        config: MaintenanceConfig,
        *,
        service_probe: ServiceProbe,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        super().__init__(config)
        self.service_probe = service_probe
        self._clock = clock or datetime.now
        self._perf = get_performance_logger("maintenance")
        self._handlers: Dict[OperationKind, Handler] = {
            OperationKind.WAL_CHECKPOINT: self._wal_checkpoint,
            OperationKind.STATISTICS_REFRESH: self._statistics_refresh,
            OperationKind.TABLE_STATISTICS: self._table_statistics,
            OperationKind.RECLAIM_SPACE: self._reclaim_space,
            OperationKind.OPTIMIZER_HINT: self._optimizer_hint,
        }
        self._db_path: Path = self.config.database.path

    def execute(
        self,
        operations_to_run: Iterable[Union[OperationKind, OperationRecommendation]],
        mode: RunMode,
        *,
        db_path: Optional[Path] = None,
        trigger: str = "intelligent",
    ) -> MaintenanceReport:
        """Run the given operations and return the run report.

        Args:
            operations_to_run: Kinds or recommendations, in any order; duplicates collapse
            mode: Interactive or unattended
            db_path: Database file, defaults to the configured path
            trigger: Label recorded in the report (intelligent, comprehensive, single)

        Raises:
            DatabaseNotFoundError: If the database file does not exist
            DatabaseInaccessibleError: If the database cannot be opened
        """
        self._db_path = Path(db_path or self.config.database.path)
        kinds = OperationKind.in_execution_order(
            item.kind if isinstance(item, OperationRecommendation) else OperationKind(item)
            for item in operations_to_run
        )

        report = MaintenanceReport(
            database_path=self._db_path,
            mode=mode,
            started_at=self._clock(),
            trigger=trigger,
        )

        if not self._db_path.is_file():
            raise DatabaseNotFoundError(
                f"Database not found: {self._db_path}",
                code=ErrorCodes.DATABASE_NOT_FOUND,
                context={"database": str(self._db_path)},
            )

        logger = self.logger.bind(database=str(self._db_path), mode=mode.value, trigger=trigger)
        logger.info("Maintenance run started", operations=[kind.value for kind in kinds])

        try:
            with operations.open_read_write(
                self._db_path, timeout=self.config.database.busy_timeout
            ) as conn:
                report.preflight = self._integrity_check(conn)
                if not report.preflight.passed:
                    logger.error(
                        "Pre-flight integrity check failed, no operation executed",
                        detail=report.preflight.detail,
                    )
                    return report

                for kind in kinds:
                    result = self._run_operation(conn, kind, mode)
                    report.results.append(result)
                    self._log_result(logger, result)

                report.postflight = self._integrity_check(conn)
                if not report.postflight.passed:
                    logger.critical(
                        "Post-flight integrity check failed",
                        detail=report.postflight.detail,
                        backups=[str(p) for p in report.backup_paths],
                    )
        except sqlite3.Error as e:
            raise DatabaseInaccessibleError(
                f"Cannot open {self._db_path} for maintenance: {e}",
                code=ErrorCodes.DATABASE_INACCESSIBLE,
                context={"database": str(self._db_path)},
                cause=e,
            )
        finally:
            report.finished_at = self._clock()

        logger.info(
            "Maintenance run finished",
            status=report.status.value,
            succeeded=report.success_count,
            failed=report.failed_count,
            skipped=report.skipped_count,
            duration=FormatUtils.format_duration(report.duration),
        )
        if report.results:
            self._perf.log_performance_summary()
            self._perf.reset_metrics()
        return report

    def _integrity_check(self, conn: sqlite3.Connection) -> IntegrityCheckResult:
        try:
            return operations.integrity_check(conn)
        except sqlite3.Error as e:
            return IntegrityCheckResult(passed=False, detail=f"Integrity check could not run: {e}")

    def _run_operation(
        self,
        conn: sqlite3.Connection,
        kind: OperationKind,
        mode: RunMode,
    ) -> OperationResult:
        """Run one operation, converting its failure into a recorded result."""
        timer = None
        try:
            with self._perf.measure(kind.value, database=str(self._db_path)) as timer:
                result = self._handlers[kind](conn, mode)
        except (sqlite3.Error, OperationError) as e:
            return OperationResult(
                kind=kind,
                outcome=OperationOutcome.FAILED,
                duration=(timer.duration if timer else None) or 0.0,
                detail=e.message if isinstance(e, OperationError) else str(e),
            )

        return dataclasses.replace(result, duration=timer.duration or 0.0)

    def _log_result(self, logger: StructuredLogger, result: OperationResult) -> None:
        fields = {"operation": result.kind.value, "outcome": result.outcome.value}
        if result.detail:
            fields["detail"] = result.detail
        if result.bytes_freed is not None:
            fields["freed"] = FormatUtils.format_bytes(result.bytes_freed)

        if result.outcome is OperationOutcome.FAILED:
            logger.error("Operation failed", **fields)
        elif result.outcome is OperationOutcome.SKIPPED:
            logger.warning("Operation skipped", **fields)
        else:
            logger.info("Operation succeeded", **fields)

    # Operation handlers

    def _wal_path(self) -> Path:
        return operations.wal_path_for(self._db_path, self.config.database.wal_suffix)

    def _wal_checkpoint(self, conn: sqlite3.Connection, mode: RunMode) -> OperationResult:
        kind = OperationKind.WAL_CHECKPOINT
        journal_mode = operations.journal_mode(conn)
        if journal_mode != "wal":
            return OperationResult(
                kind, OperationOutcome.SKIPPED,
                detail=f"Database is not in WAL mode (journal_mode={journal_mode})",
            )

        wal_before = operations.file_size(self._wal_path())
        if wal_before == 0:
            return OperationResult(kind, OperationOutcome.SKIPPED, detail="No WAL content to checkpoint")

        busy, log_frames, checkpointed = operations.wal_checkpoint(conn, "TRUNCATE")
        wal_after = operations.file_size(self._wal_path())

        if busy:
            # A reader held the WAL open; the file was not truncated
            return OperationResult(
                kind, OperationOutcome.SKIPPED,
                detail=f"Database busy, checkpointed {checkpointed} of {log_frames} WAL frames",
                bytes_freed=wal_before - wal_after,
            )
        return OperationResult(
            kind, OperationOutcome.SUCCESS,
            detail=f"Checkpointed {checkpointed} of {log_frames} WAL frames",
            bytes_freed=wal_before - wal_after,
        )

    def _statistics_refresh(self, conn: sqlite3.Connection, mode: RunMode) -> OperationResult:
        operations.analyze(conn)
        return OperationResult(
            OperationKind.STATISTICS_REFRESH, OperationOutcome.SUCCESS,
            detail="Query planner statistics rebuilt",
        )

    def _table_statistics(self, conn: sqlite3.Connection, mode: RunMode) -> OperationResult:
        kind = OperationKind.TABLE_STATISTICS
        tables = operations.list_user_tables(conn)
        if not tables:
            return OperationResult(kind, OperationOutcome.SKIPPED, detail="No user tables")

        failed = []
        for table in tables:
            try:
                operations.analyze(conn, table)
            except sqlite3.Error as e:
                self.logger.warning("Table statistics failed", table=table, error=str(e))
                failed.append(table)

        if failed:
            raise OperationError(
                f"ANALYZE failed for: {', '.join(failed)}",
                code=ErrorCodes.OPERATION_FAILED,
                context={"tables": failed},
            )
        return OperationResult(kind, OperationOutcome.SUCCESS, detail=f"Analyzed {len(tables)} tables")

    def _service_running(self, mode: RunMode) -> bool:
        """Ask the probe; an unanswerable probe counts as a running service."""
        try:
            return self.service_probe.is_running()
        except VaultMaintException as e:
            self.logger.warning(
                "Service probe failed, assuming the vault service is running",
                mode=mode.value,
                error=e.message,
            )
            return True

    def _reclaim_space(self, conn: sqlite3.Connection, mode: RunMode) -> OperationResult:
        kind = OperationKind.RECLAIM_SPACE

        if self._service_running(mode):
            if mode is RunMode.UNATTENDED:
                return OperationResult(
                    kind, OperationOutcome.SKIPPED,
                    detail="service running; space reclamation needs an interactive run",
                )
            self.logger.warning(
                "Vault service is running; reclaiming space may briefly block it",
                database=str(self._db_path),
            )

        try:
            backup_path = self.create_backup(conn)
        except BackupError as e:
            self.logger.error("Backup before reclaiming space failed", error=e.message)
            return OperationResult(kind, OperationOutcome.SKIPPED, detail=f"Backup failed: {e.message}")

        size_before = operations.file_size(self._db_path)
        operations.vacuum(conn)
        if operations.journal_mode(conn) == "wal":
            # VACUUM output lands in the WAL; fold it back so the file shrinks now
            operations.wal_checkpoint(conn, "TRUNCATE")
        size_after = operations.file_size(self._db_path)

        return OperationResult(
            kind, OperationOutcome.SUCCESS,
            detail=(
                f"Database rebuilt: {FormatUtils.format_bytes(size_before)} -> "
                f"{FormatUtils.format_bytes(size_after)}"
            ),
            bytes_freed=size_before - size_after,
            backup_path=backup_path,
        )

    def _optimizer_hint(self, conn: sqlite3.Connection, mode: RunMode) -> OperationResult:
        operations.optimize(conn)
        return OperationResult(
            OperationKind.OPTIMIZER_HINT, OperationOutcome.SUCCESS,
            detail="PRAGMA optimize completed",
        )

    def create_backup(self, conn: sqlite3.Connection) -> Path:
        """Dump the database into the backup directory.

        Raises:
            BackupError: If the dump fails
        """
        settings = self.config.backup
        stem = f"{settings.filename_prefix}-{self._clock():%Y%m%d_%H%M%S}"
        destination = settings.directory / f"{stem}.sql"
        counter = 1
        while destination.exists():
            destination = settings.directory / f"{stem}-{counter}.sql"
            counter += 1

        path = operations.dump_database(conn, destination)
        self.logger.info(
            "Backup created",
            backup_path=str(path),
            size=FormatUtils.format_bytes(operations.file_size(path)),
        )
        return path
