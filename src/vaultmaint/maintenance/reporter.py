"""Maintenance reports and notifications.

Every run leaves one JSON report in the reports directory. Unattended runs
additionally hand a ``(status, message)`` pair to a Notifier; delivering it
(mail, webhook) is the notifier's business.

Example:
    >>> reporter = MaintenanceReporter(config.reports)
    >>> path = reporter.record(report)
    >>> reporter.notify(report, LoggingNotifier())
"""

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from ..config.models import ReportSettings
from ..core.base import BaseComponent
from ..core.exceptions import ErrorCodes, ReportError
from ..core.utils import FormatUtils
from ..logging import get_logger
from .models import MaintenanceReport, OperationOutcome

REPORT_PREFIX = "maintenance-report-"


class NotificationStatus:
    """Statuses handed to notifiers."""

    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


@runtime_checkable
class Notifier(Protocol):
    def notify(self, status: str, message: str) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes notifications to the log."""

    def __init__(self) -> None:
        self.logger = get_logger("vaultmaint.notifier")

    def notify(self, status: str, message: str) -> None:
        if status in (NotificationStatus.FAILED, NotificationStatus.PARTIAL):
            self.logger.error("Maintenance notification", status=status, summary=message)
        else:
            self.logger.info("Maintenance notification", status=status, summary=message)


def _report_order(path: Path) -> Tuple[str, int]:
    """Sort key: start timestamp, then the collision counter (none sorts first)."""
    stamp, _, counter = path.stem[len(REPORT_PREFIX):].partition("-")
    return stamp, int(counter) if counter.isdigit() else 0


def summary_counts(report: MaintenanceReport) -> Dict[str, int]:
    return {
        "total": len(report.results),
        "success": report.success_count,
        "failed": report.failed_count,
        "skipped": report.skipped_count,
    }


def notification_for(report: MaintenanceReport) -> Tuple[str, str]:
    """Map a report onto a notification status and one-line message.

    Failed integrity checks and runs where every operation failed are
    FAILED; a mix of failures and successes is PARTIAL; runs that changed
    nothing are SKIPPED; everything else is COMPLETED.
    """
    duration = FormatUtils.format_duration(report.duration)
    counts = summary_counts(report)

    if report.preflight is not None and not report.preflight.passed:
        return NotificationStatus.FAILED, f"Pre-flight integrity check failed: {report.preflight.detail}"
    if report.postflight is not None and not report.postflight.passed:
        return NotificationStatus.FAILED, f"Post-flight integrity check failed: {report.postflight.detail}"

    if counts["failed"]:
        status = NotificationStatus.PARTIAL if counts["success"] else NotificationStatus.FAILED
        failed = ", ".join(
            r.kind.value for r in report.results if r.outcome is OperationOutcome.FAILED
        )
        return status, f"{counts['failed']} of {counts['total']} operations failed ({failed}) in {duration}"

    if not counts["success"]:
        if counts["skipped"]:
            return NotificationStatus.SKIPPED, f"All {counts['skipped']} operations skipped in {duration}"
        return NotificationStatus.SKIPPED, "Database well maintained, no operations needed"

    return (
        NotificationStatus.COMPLETED,
        f"{counts['success']} operations completed, {counts['skipped']} skipped in {duration}",
    )


class MaintenanceReporter(BaseComponent[ReportSettings]):
    """Persists reports and produces summaries and notifications.

    Args:
        config: Report settings
        clock: Returns the current time; used for retention
    """

    component_name = "Reporter"

    def __init__(
        self,
        config: ReportSettings,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        super().__init__(config)
        self._clock = clock or datetime.now

    def record(self, report: MaintenanceReport) -> Optional[Path]:
        """Write ``report`` as JSON.

        Returns:
            Report file path, or None when report files are disabled

        Raises:
            ReportError: If the reports directory or file cannot be written
        """
        if not self.config.enabled:
            return None

        directory = self.config.directory
        stem = f"{REPORT_PREFIX}{report.started_at:%Y%m%d_%H%M%S}"
        path = directory / f"{stem}.json"
        try:
            directory.mkdir(parents=True, exist_ok=True)
            counter = 1
            while path.exists():
                path = directory / f"{stem}-{counter}.json"
                counter += 1

            with open(path, "w", encoding="utf-8") as f:
                json.dump(report.to_dict(), f, indent=2)
                f.write("\n")
        except OSError as e:
            raise ReportError(
                f"Cannot write report to {directory}: {e}",
                code=ErrorCodes.REPORT_WRITE_FAILED,
                context={"directory": str(directory)},
                cause=e,
            )

        self.logger.info("Report written", report_path=str(path), status=report.status.value)
        return path

    def summarize(self, report: MaintenanceReport) -> str:
        """Multi-line human summary of a run."""
        counts = summary_counts(report)
        lines = [
            f"Database:   {report.database_path}",
            f"Mode:       {report.mode.value} ({report.trigger})",
            f"Status:     {report.status.value.upper()}",
            f"Duration:   {FormatUtils.format_duration(report.duration)}",
            f"Operations: {counts['total']} run, {counts['success']} succeeded, "
            f"{counts['failed']} failed, {counts['skipped']} skipped",
        ]

        if report.preflight is not None:
            lines.append(f"Pre-flight integrity:  {report.preflight.detail}")
        if report.postflight is not None:
            lines.append(f"Post-flight integrity: {report.postflight.detail}")

        if report.analysis is not None and report.analysis.is_empty:
            lines.append("Database is well maintained, no operations needed")

        for result in report.results:
            line = f"  [{result.outcome.value:>7}] {result.kind.value}"
            if result.detail:
                line += f": {result.detail}"
            if result.bytes_freed:
                line += f" ({FormatUtils.format_bytes(result.bytes_freed)} freed)"
            lines.append(line)

        for backup in report.backup_paths:
            lines.append(f"Backup: {backup}")

        return "\n".join(lines)

    def notify(self, report: MaintenanceReport, notifier: Notifier) -> Tuple[str, str]:
        """Send the report's notification through ``notifier``."""
        status, message = notification_for(report)
        notifier.notify(status, message)
        return status, message

    def list_reports(self) -> List[Path]:
        if not self.config.directory.is_dir():
            return []
        return sorted(self.config.directory.glob(f"{REPORT_PREFIX}*.json"), key=_report_order)

    def cleanup_old_reports(self) -> List[Path]:
        """Delete report files older than the retention period.

        Returns:
            Deleted paths
        """
        cutoff = self._clock() - timedelta(days=self.config.retention_days)
        deleted = []

        try:
            for path in self.list_reports():
                if datetime.fromtimestamp(path.stat().st_mtime) < cutoff:
                    path.unlink()
                    deleted.append(path)
        except OSError as e:
            raise ReportError(
                f"Cannot remove old reports from {self.config.directory}: {e}",
                code=ErrorCodes.REPORT_WRITE_FAILED,
                context={"directory": str(self.config.directory)},
                cause=e,
            )

        if deleted:
            self.logger.info(
                "Old reports removed",
                removed=len(deleted),
                retention_days=self.config.retention_days,
            )
        return deleted
