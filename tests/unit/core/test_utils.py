"""Unit tests for core utilities."""

import time

import pytest

from vaultmaint.core.utils import (
    BYTES_PER_MB,
    DictUtils,
    FormatUtils,
    StringUtils,
    measure_time,
)


class TestFormatUtils:
    """Test formatting helpers."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, "0 B"),
            (512, "512.00 B"),
            (1536, "1.50 KB"),
            (BYTES_PER_MB, "1.00 MB"),
            (-2048, "-2.00 KB"),
        ],
    )
    def test_format_bytes(self, value, expected):
        """Test byte formatting across units."""
        assert FormatUtils.format_bytes(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, "0s"),
            (0.001, "1.00ms"),
            (45, "45s"),
            (3661, "1h 1m 1s"),
            (90.5, "1m 30.50s"),
        ],
    )
    def test_format_duration(self, value, expected):
        """Test duration formatting."""
        assert FormatUtils.format_duration(value) == expected

    def test_format_percentage(self):
        """Test percentage formatting."""
        assert FormatUtils.format_percentage(85.75) == "85.8%"
        assert FormatUtils.format_percentage(12.5, decimal_places=0) == "12%"


class TestStringUtils:
    """Test SQL identifier quoting."""

    def test_plain_identifier(self):
        """Test a plain name is wrapped in double quotes."""
        assert StringUtils.quote_sql_identifier("ciphers") == '"ciphers"'

    def test_embedded_quotes_are_doubled(self):
        """Test embedded double quotes are escaped."""
        assert StringUtils.quote_sql_identifier('odd"name') == '"odd""name"'


class TestMeasureTime:
    """Test the timing context manager."""

    def test_duration_measured(self):
        """Test the duration is recorded and frozen on exit."""
        with measure_time() as timer:
            time.sleep(0.01)

        first = timer.duration
        assert first is not None and first >= 0.01
        assert timer.duration == first


class TestDictUtils:
    """Test dictionary helpers."""

    def test_deep_merge(self):
        """Test nested dictionaries merge with the second taking precedence."""
        merged = DictUtils.deep_merge(
            {"database": {"path": "a", "busy_timeout": 30}, "logging": {"level": "INFO"}},
            {"database": {"path": "b"}},
        )

        assert merged == {
            "database": {"path": "b", "busy_timeout": 30},
            "logging": {"level": "INFO"},
        }

    def test_deep_merge_does_not_mutate_inputs(self):
        """Test the first dictionary is left untouched."""
        original = {"a": {"b": 1}}
        DictUtils.deep_merge(original, {"a": {"b": 2}})

        assert original == {"a": {"b": 1}}

    def test_set_nested_value_with_separator(self):
        """Test nested assignment with a custom separator."""
        nested = {}
        DictUtils.set_nested_value(nested, "thresholds__wal_size_critical_mb", "20", separator="__")

        assert nested == {"thresholds": {"wal_size_critical_mb": "20"}}
