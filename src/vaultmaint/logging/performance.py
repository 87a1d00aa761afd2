"""Performance logging for VaultMaint operations.

Each maintenance operation is timed; the measured duration ends up both in
the log stream and in the operation's result record.

Classes:
    TimingMetrics: A single timing measurement
    PerformanceMetrics: Aggregated timings for one operation name
    TimingContext: Context manager for operation timing
    PerformanceLogger: Main performance logging interface

Example:
    >>> perf_logger = PerformanceLogger("maintenance")
    >>> with perf_logger.measure("RECLAIM_SPACE") as timer:
    ...     connection.execute("VACUUM")
    >>> timer.duration_ms
    412.8
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, Optional

from ..core.utils import FormatUtils
from .structured import StructuredLogger


@dataclass
class TimingMetrics:
    """Metrics for a single timing measurement.

    Attributes:
        operation: Operation name
        start_time: perf_counter value at start
        end_time: perf_counter value at end
        duration: Duration in seconds
        metadata: Additional metadata
        success: Whether operation succeeded
        error: Error information if failed
    """

    operation: str
    start_time: float
    end_time: Optional[float] = None
    duration: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    success: bool = True
    error: Optional[str] = None

    def complete(self, success: bool = True, error: Optional[str] = None) -> None:
        """Mark timing as complete."""
        self.end_time = time.perf_counter()
        self.duration = self.end_time - self.start_time
        self.success = success
        self.error = error

    @property
    def duration_ms(self) -> Optional[float]:
        """Duration in milliseconds, or None if not completed."""
        return self.duration * 1000 if self.duration is not None else None

    @property
    def is_complete(self) -> bool:
        return self.end_time is not None


@dataclass
class PerformanceMetrics:
    """Aggregated performance metrics for an operation."""

    operation: str
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    total_duration: float = 0.0
    min_duration: Optional[float] = None
    max_duration: Optional[float] = None

    def add_timing(self, timing: TimingMetrics) -> None:
        """Add a completed timing measurement."""
        if not timing.is_complete or timing.duration is None:
            return

        self.total_calls += 1
        if timing.success:
            self.successful_calls += 1
        else:
            self.failed_calls += 1

        duration = timing.duration
        self.total_duration += duration
        if self.min_duration is None or duration < self.min_duration:
            self.min_duration = duration
        if self.max_duration is None or duration > self.max_duration:
            self.max_duration = duration

    @property
    def avg_duration(self) -> Optional[float]:
        if self.total_calls == 0:
            return None
        return self.total_duration / self.total_calls

    @property
    def success_rate(self) -> float:
        """Success rate as a percentage (0-100)."""
        if self.total_calls == 0:
            return 0.0
        return (self.successful_calls / self.total_calls) * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "total_calls": self.total_calls,
            "successful_calls": self.successful_calls,
            "failed_calls": self.failed_calls,
            "success_rate": self.success_rate,
            "total_duration": self.total_duration,
            "min_duration": self.min_duration,
            "max_duration": self.max_duration,
            "avg_duration": self.avg_duration,
        }


class TimingContext:
    """Context manager for measuring operation timing.

    The timing is completed even when the block raises, so callers that
    catch the exception outside the block can still read ``duration``.

    Example:
        >>> with TimingContext("QUERY_OPTIMIZATION") as timer:
        ...     connection.execute("PRAGMA optimize")
        >>> print(f"Optimize took {timer.duration_ms:.2f}ms")
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[StructuredLogger] = None,
        metadata: Optional[Dict[str, Any]] = None,
        auto_log: bool = True,
    ) -> None:
        """Initialize timing context.

        Args:
            operation: Operation name
            logger: Logger for automatic logging
            metadata: Additional metadata
            auto_log: Whether to automatically log timing results
        """
        self.operation = operation
        self.logger = logger
        self.metadata = metadata or {}
        self.auto_log = auto_log
        self._timing: Optional[TimingMetrics] = None

    @property
    def timing(self) -> Optional[TimingMetrics]:
        return self._timing

    @property
    def duration(self) -> Optional[float]:
        """Operation duration in seconds, or None if not completed."""
        return self._timing.duration if self._timing else None

    @property
    def duration_ms(self) -> Optional[float]:
        """Operation duration in milliseconds, or None if not completed."""
        return self._timing.duration_ms if self._timing else None

    def __enter__(self) -> "TimingContext":
        """Enter timing context."""
        self._timing = TimingMetrics(
            operation=self.operation,
            start_time=time.perf_counter(),
            metadata=self.metadata,
        )

        if self.logger and self.auto_log:
            self.logger.debug("Operation started", operation=self.operation, **self.metadata)

        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit timing context."""
        if self._timing is None:
            return

        success = exc_type is None
        error = str(exc_val) if exc_val else None
        self._timing.complete(success=success, error=error)

        if self.logger and self.auto_log:
            if success:
                self.logger.info(
                    "Operation completed",
                    operation=self.operation,
                    duration_ms=self._timing.duration_ms,
                    success=True,
                    **self.metadata,
                )
            else:
                self.logger.error(
                    "Operation failed",
                    operation=self.operation,
                    duration_ms=self._timing.duration_ms,
                    success=False,
                    error=error,
                    **self.metadata,
                )


class PerformanceLogger:
    """Performance logger for timing maintenance operations.

    Attributes:
        name: Logger name
        logger: Underlying structured logger

    Example:
        >>> perf_logger = PerformanceLogger("maintenance")
        >>> with perf_logger.measure("STATISTICS_UPDATE"):
        ...     connection.execute("ANALYZE")
        >>> perf_logger.get_summary()["total_calls"]
        1
    """

    def __init__(
        self,
        name: str,
        *,
        auto_log: bool = True,
        track_metrics: bool = True,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """Initialize performance logger.

        Args:
            name: Logger name
            auto_log: Whether to automatically log timing results
            track_metrics: Whether to track aggregated metrics
            logger: Custom structured logger instance
        """
        self.name = name
        self.auto_log = auto_log
        self.track_metrics = track_metrics
        self.logger = logger or StructuredLogger(f"perf.{name}")
        self._metrics: Dict[str, PerformanceMetrics] = {}

    @contextmanager
    def measure(self, operation: str, **metadata: Any) -> Generator[TimingContext, None, None]:
        """Context manager for measuring operation performance.

        Args:
            operation: Operation name
            **metadata: Additional metadata

        Yields:
            TimingContext for the operation
        """
        timing_context = TimingContext(
            operation=operation,
            logger=self.logger if self.auto_log else None,
            metadata=metadata,
            auto_log=self.auto_log,
        )

        try:
            with timing_context as ctx:
                yield ctx
        finally:
            if self.track_metrics and timing_context.timing:
                self._add_timing_to_metrics(timing_context.timing)

    def _add_timing_to_metrics(self, timing: TimingMetrics) -> None:
        if timing.operation not in self._metrics:
            self._metrics[timing.operation] = PerformanceMetrics(operation=timing.operation)
        self._metrics[timing.operation].add_timing(timing)

    def reset_metrics(self) -> None:
        """Drop all aggregated metrics."""
        self._metrics.clear()

    def get_summary(self) -> Dict[str, Any]:
        """Get performance summary across all operations."""
        total_calls = sum(m.total_calls for m in self._metrics.values())
        total_successful = sum(m.successful_calls for m in self._metrics.values())
        total_duration = sum(m.total_duration for m in self._metrics.values())

        return {
            "total_operations": len(self._metrics),
            "total_calls": total_calls,
            "total_duration": total_duration,
            "overall_success_rate": (total_successful / total_calls * 100) if total_calls else 0.0,
            "operations": {name: metrics.to_dict() for name, metrics in self._metrics.items()},
        }

    def log_performance_summary(self) -> None:
        """Log current performance summary."""
        summary = self.get_summary()
        self.logger.info(
            "Performance summary",
            total_operations=summary["total_operations"],
            total_calls=summary["total_calls"],
            total_duration_formatted=FormatUtils.format_duration(summary["total_duration"]),
            overall_success_rate=FormatUtils.format_percentage(summary["overall_success_rate"]),
        )

    def __repr__(self) -> str:
        return (
            f"PerformanceLogger("
            f"name={self.name!r}, "
            f"operations={len(self._metrics)}, "
            f"auto_log={self.auto_log})"
        )
