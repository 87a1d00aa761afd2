"""Command line interface for VaultMaint.

Examples:
    vaultmaint                          # Intelligent run, interactive
    vaultmaint --auto                   # Intelligent run, unattended
    vaultmaint --cron                   # Same, as installed in crontab
    vaultmaint --analyze-only           # Show recommendations only
    vaultmaint --operation vacuum       # Force one operation
    vaultmaint --schedule "0 3 * * 0"   # Install the weekly schedule
"""

import argparse
import signal
import sys
from typing import Any, Dict, List, Optional

from . import __version__
from .config import load_config
from .config.models import MaintenanceConfig
from .core.exceptions import (
    ConfigurationError,
    DatabaseError,
    IntegrityCheckError,
    MaintenanceInProgressError,
    ReportError,
    SchedulerError,
    VaultMaintException,
)
from .core.utils import FormatUtils
from .logging import configure_logging, get_logger
from .maintenance import (
    AnalysisResult,
    MaintenanceEngine,
    MaintenanceReport,
    MaintenanceScheduler,
    OperationKind,
    RunMode,
    parse_operation,
)

EXIT_OK = 0
EXIT_FAILURE = 1
# EX_TEMPFAIL from sysexits.h: another run holds the lock, try again later
EXIT_LOCKED = 75


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vaultmaint",
        description="Intelligent SQLite maintenance for a self-hosted password vault",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                            # Intelligent run, interactive
  %(prog)s --auto                     # Intelligent run, unattended (no VACUUM while the vault runs)
  %(prog)s --cron                     # Same as --auto, as used by the installed schedule
  %(prog)s --analyze-only             # Show what would be done
  %(prog)s --operation checkpoint     # Force a WAL checkpoint
  %(prog)s --comprehensive            # Run every operation
  %(prog)s --schedule "0 3 * * 0"     # Weekly maintenance, Sunday 3:00 AM
  %(prog)s --schedule-templates       # List common schedules
        """,
    )

    # Run modes
    modes = parser.add_mutually_exclusive_group()
    modes.add_argument(
        "--auto",
        action="store_true",
        help="Intelligent maintenance, unattended",
    )
    modes.add_argument(
        "--cron",
        action="store_true",
        help="Intelligent maintenance, unattended, for the installed cron job",
    )
    modes.add_argument(
        "--analyze-only", "--analyze",
        dest="analyze_only",
        action="store_true",
        help="Collect metrics and print recommendations without changing anything",
    )
    modes.add_argument(
        "--operation",
        metavar="NAME",
        help="Force one operation: checkpoint, analyze, statistics, vacuum or optimize",
    )
    modes.add_argument(
        "--force-vacuum",
        action="store_true",
        help="Shorthand for --operation vacuum",
    )
    modes.add_argument(
        "--comprehensive",
        action="store_true",
        help="Run every maintenance operation",
    )

    # Scheduling
    modes.add_argument(
        "--schedule",
        metavar="EXPR",
        help="Install the maintenance cron entry with this cron expression",
    )
    modes.add_argument(
        "--remove-schedule",
        action="store_true",
        help="Remove the maintenance cron entry",
    )
    modes.add_argument(
        "--schedule-status",
        action="store_true",
        help="Show the installed maintenance schedule",
    )
    modes.add_argument(
        "--schedule-templates",
        action="store_true",
        help="List common maintenance schedules",
    )

    # Settings
    parser.add_argument("--database", metavar="PATH", help="SQLite database file")
    parser.add_argument("--config", metavar="FILE", help="YAML configuration file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        help="Log format (default: text)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def _config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.database:
        overrides["database"] = {"path": args.database}

    logging_overrides = {}
    if args.log_level:
        logging_overrides["level"] = args.log_level
    if args.log_format:
        logging_overrides["format"] = args.log_format
    if logging_overrides:
        overrides["logging"] = logging_overrides

    return overrides


def _handle_sigterm(signum: int, frame: Any) -> None:
    # Unwinds through the run lock and connection context managers
    raise SystemExit(128 + signum)


def _print_analysis(analysis: AnalysisResult) -> None:
    metrics = analysis.metrics
    print(f"Database:       {metrics.database_path}")
    print(f"Size:           {FormatUtils.format_bytes(metrics.file_size_bytes)}")
    print(f"WAL:            {FormatUtils.format_bytes(metrics.wal_size_bytes)} ({metrics.journal_mode})")
    print(f"Fragmentation:  {metrics.fragmentation_ratio:.2f} ({metrics.fragmentation_level})")
    print(f"Free pages:     {FormatUtils.format_percentage(metrics.freelist_percent)}")
    print(f"Tables:         {metrics.table_count} tables, {metrics.index_count} indexes")
    print(f"Statistics:     {metrics.statistics_freshness.value}")
    print()

    if analysis.is_empty:
        print("Database is well maintained, no operations needed")
        return

    print("Recommended operations:")
    for rec in analysis.recommendations:
        print(f"  - {rec}")


def _run_schedule_command(args: argparse.Namespace, config: MaintenanceConfig) -> int:
    scheduler = MaintenanceScheduler(config.scheduler)

    if args.schedule_templates:
        for template in scheduler.templates():
            print(f"{template.expression:<14} {template.description:<36} {template.category}")
        return EXIT_OK

    if args.schedule_status:
        status = scheduler.status()
        if not status.active:
            print("No maintenance schedule installed")
        else:
            print(f"Schedule: {status.expression} ({status.next_run_description})")
            print(f"Command:  {status.command}")
        return EXIT_OK

    if args.remove_schedule:
        if scheduler.remove():
            print("Maintenance schedule removed")
        else:
            print("No maintenance schedule installed")
        return EXIT_OK

    status = scheduler.install(args.schedule)
    print(f"Maintenance schedule installed: {status.expression} ({status.next_run_description})")
    return EXIT_OK


def _run_maintenance(args: argparse.Namespace, config: MaintenanceConfig, kind: Optional[OperationKind]) -> int:
    engine = MaintenanceEngine(config)

    if args.analyze_only:
        _print_analysis(engine.analyze())
        return EXIT_OK

    mode = RunMode.UNATTENDED if (args.auto or args.cron) else RunMode.INTERACTIVE
    report: MaintenanceReport
    if kind is not None:
        report = engine.run_operation(kind, mode)
    elif args.comprehensive:
        report = engine.run_comprehensive(mode)
    else:
        report = engine.run_intelligent(mode)

    print(engine.reporter.summarize(report))
    return EXIT_OK if report.succeeded else EXIT_FAILURE


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the ``vaultmaint`` command.

    Returns:
        Process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    kind: Optional[OperationKind] = None
    if args.force_vacuum:
        kind = OperationKind.RECLAIM_SPACE
    elif args.operation:
        try:
            kind = parse_operation(args.operation)
        except ValueError as e:
            parser.error(str(e))

    try:
        config = load_config(args.config, overrides=_config_overrides(args))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    configure_logging(config.logging)
    logger = get_logger("vaultmaint.cli")
    signal.signal(signal.SIGTERM, _handle_sigterm)

    scheduling = args.schedule or args.remove_schedule or args.schedule_status or args.schedule_templates
    try:
        if scheduling:
            return _run_schedule_command(args, config)
        return _run_maintenance(args, config, kind)
    except MaintenanceInProgressError as e:
        logger.warning("Maintenance already running", **e.context)
        print(f"Another maintenance run is in progress: {e.message}", file=sys.stderr)
        return EXIT_LOCKED
    except (ConfigurationError, DatabaseError, IntegrityCheckError, ReportError, SchedulerError) as e:
        logger.error("Maintenance aborted", error=e.message, code=e.code)
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FAILURE
    except VaultMaintException as e:
        logger.exception("Unexpected maintenance error", error=e.message, code=e.code)
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FAILURE
