"""Utility functions for VaultMaint operations.

This module provides common helpers used throughout the maintenance engine:
human-readable formatting of sizes and durations, timing, SQL identifier
quoting, and nested dictionary manipulation for layered configuration.

Functions:
    format_bytes: Format byte counts into human-readable strings
    format_duration: Format durations into human-readable strings
    measure_time: Context manager for measuring execution time
    deep_merge: Deep merge dictionaries
    set_nested_value: Set value in nested dictionary

Example:
    >>> with measure_time() as timer:
    ...     # Some operation
    ...     pass
    >>> print(f"Operation took {timer.duration:.2f}s")
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional, Union

BYTES_PER_MB = 1024 * 1024


class FormatUtils:
    """Utility class for formatting operations."""

    @staticmethod
    def format_bytes(bytes_count: Union[int, float], *, decimal_places: int = 2) -> str:
        """Format byte count into human-readable string.

        Args:
            bytes_count: Number of bytes
            decimal_places: Number of decimal places

        Returns:
            Formatted byte string

        Example:
            >>> FormatUtils.format_bytes(1536)
            '1.50 KB'
            >>> FormatUtils.format_bytes(1048576)
            '1.00 MB'
        """
        if bytes_count == 0:
            return "0 B"

        units = ["B", "KB", "MB", "GB", "TB", "PB"]
        unit_index = 0
        size = float(bytes_count)
        sign = "-" if size < 0 else ""
        size = abs(size)

        while size >= 1024 and unit_index < len(units) - 1:
            size /= 1024
            unit_index += 1

        return f"{sign}{size:.{decimal_places}f} {units[unit_index]}"

    @staticmethod
    def format_duration(seconds: Union[int, float], *, precision: str = "auto") -> str:
        """Format duration into human-readable string.

        Args:
            seconds: Duration in seconds
            precision: Precision level ('auto', 'seconds', 'milliseconds')

        Returns:
            Formatted duration string

        Example:
            >>> FormatUtils.format_duration(3661)
            '1h 1m 1s'
            >>> FormatUtils.format_duration(0.001)
            '1.00ms'
        """
        if seconds == 0:
            return "0s"

        abs_seconds = abs(seconds)
        sign = "-" if seconds < 0 else ""

        if precision == "auto":
            precision = "seconds" if abs_seconds >= 1 else "milliseconds"

        if precision == "milliseconds":
            return f"{sign}{abs_seconds * 1000:.2f}ms"

        hours = int(abs_seconds // 3600)
        minutes = int((abs_seconds % 3600) // 60)
        secs = abs_seconds % 60

        parts = []
        if hours > 0:
            parts.append(f"{hours}h")
        if minutes > 0:
            parts.append(f"{minutes}m")
        if secs > 0 or not parts:
            if secs == int(secs):
                parts.append(f"{int(secs)}s")
            else:
                parts.append(f"{secs:.2f}s")

        return sign + " ".join(parts)

    @staticmethod
    def format_percentage(value: float, *, decimal_places: int = 1) -> str:
        """Format percentage value.

        Example:
            >>> FormatUtils.format_percentage(85.7)
            '85.7%'
        """
        return f"{value:.{decimal_places}f}%"


class StringUtils:
    """Utility class for string operations."""

    @staticmethod
    def quote_sql_identifier(identifier: str) -> str:
        """Quote a string for use as an SQLite identifier.

        Embedded double quotes are doubled, so any table name read back
        from ``sqlite_master`` can be used safely.

        Example:
            >>> StringUtils.quote_sql_identifier('odd"name')
            '"odd""name"'
        """
        return '"' + identifier.replace('"', '""') + '"'


class TimerContext:
    """Context manager for measuring execution time."""

    def __init__(self) -> None:
        """Initialize timer context."""
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    @property
    def duration(self) -> Optional[float]:
        """Get duration in seconds.

        Returns:
            Duration in seconds or None if not started
        """
        if self.start_time is None:
            return None

        end_time = self.end_time or time.perf_counter()
        return end_time - self.start_time

    def __enter__(self) -> "TimerContext":
        """Enter context and start timer."""
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context and stop timer."""
        self.end_time = time.perf_counter()


@contextmanager
def measure_time() -> Generator[TimerContext, None, None]:
    """Context manager for measuring execution time.

    Yields:
        TimerContext instance for accessing duration

    Example:
        >>> with measure_time() as timer:
        ...     time.sleep(0.1)
        >>> print(f"Duration: {timer.duration:.3f}s")
    """
    timer = TimerContext()
    with timer:
        yield timer


class DictUtils:
    """Utility class for dictionary operations."""

    @staticmethod
    def deep_merge(dict1: Dict[str, Any], dict2: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries.

        Args:
            dict1: First dictionary
            dict2: Second dictionary (takes precedence)

        Returns:
            Merged dictionary

        Example:
            >>> d1 = {"a": {"b": 1, "c": 2}}
            >>> d2 = {"a": {"c": 3, "d": 4}}
            >>> DictUtils.deep_merge(d1, d2)
            {'a': {'b': 1, 'c': 3, 'd': 4}}
        """
        result = dict1.copy()

        for key, value in dict2.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = DictUtils.deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    @staticmethod
    def set_nested_value(
        nested_dict: Dict[str, Any],
        key_path: str,
        value: Any,
        *,
        separator: str = ".",
    ) -> None:
        """Set value in nested dictionary using a key path.

        Example:
            >>> nested = {}
            >>> DictUtils.set_nested_value(nested, "a.b.c", 1)
            >>> nested
            {'a': {'b': {'c': 1}}}
        """
        keys = key_path.split(separator)
        current = nested_dict

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value
