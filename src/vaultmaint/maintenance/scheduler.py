"""Maintenance scheduling through cron.

The scheduler owns exactly one cron entry, recognised by a marker comment.
Installing replaces that entry and leaves every other entry untouched;
removing deletes only that entry. Expressions are validated before the
cron store is read, and the store is snapshotted to a file before it is
changed.

Classes:
    CronExpression: Validated five-field cron expression
    ScheduleStore: Protocol of an external cron store
    CrontabScheduleStore: The user's crontab, through the crontab CLI
    InMemoryScheduleStore: Store kept in memory
    ScheduleStatus: Installed schedule, if any
    ScheduleTemplate: A commonly used schedule
    MaintenanceScheduler: Install, remove and inspect the schedule

Example:
    >>> scheduler = MaintenanceScheduler(config.scheduler, CrontabScheduleStore())
    >>> scheduler.install("0 3 * * 0")
    >>> scheduler.status().next_run_description
    'Every Sunday at 3:00 AM'
"""

import re
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Tuple, runtime_checkable

from ..config.models import SchedulerSettings
from ..core.base import BaseComponent
from ..core.exceptions import ErrorCodes, ScheduleValidationError, SchedulerError

_NUMBER = r"\d+"
_RANGE = r"\d+-\d+"
_TERM = re.compile(rf"^(?:{_RANGE}|{_NUMBER})$")
_STEP = re.compile(r"^\*/(\d+)$")

WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


@dataclass(frozen=True)
class _FieldSpec:
    name: str
    low: int
    high: int


CRON_FIELDS: Tuple[_FieldSpec, ...] = (
    _FieldSpec("minute", 0, 59),
    _FieldSpec("hour", 0, 23),
    _FieldSpec("day", 1, 31),
    _FieldSpec("month", 1, 12),
    _FieldSpec("weekday", 0, 7),
)


def _validate_field(value: str, spec: _FieldSpec) -> None:
    """Raise ScheduleValidationError unless ``value`` is valid for ``spec``."""

    def reject(reason: str) -> ScheduleValidationError:
        return ScheduleValidationError(
            f"Invalid {spec.name} field {value!r}: {reason}",
            code=ErrorCodes.SCHEDULE_INVALID,
            context={"field": spec.name, "value": value, "range": f"{spec.low}-{spec.high}"},
        )

    if value == "*":
        return

    step = _STEP.match(value)
    if step:
        if int(step.group(1)) < 1:
            raise reject("step must be at least 1")
        return

    for term in value.split(","):
        if not _TERM.match(term):
            raise reject("expected *, */n, a number, a range a-b or a comma list")

        if "-" in term:
            start, end = (int(part) for part in term.split("-"))
            if start > end:
                raise reject(f"range start {start} is after its end {end}")
        else:
            start = end = int(term)

        if start < spec.low or end > spec.high:
            raise reject(f"out of range {spec.low}-{spec.high}")


@dataclass(frozen=True)
class CronExpression:
    """A validated five-field cron expression."""

    minute: str
    hour: str
    day: str
    month: str
    weekday: str

    @classmethod
    def parse(cls, text: str) -> "CronExpression":
        """Parse and validate ``text``.

        Raises:
            ScheduleValidationError: If the expression is malformed

        Example:
            >>> CronExpression.parse("0 3 * * 0").weekday
            '0'
        """
        fields = (text or "").split()
        if len(fields) != len(CRON_FIELDS):
            raise ScheduleValidationError(
                f"Cron expression must have exactly 5 fields, got {len(fields)}: {text!r}",
                code=ErrorCodes.SCHEDULE_INVALID,
                context={"expression": text},
            )

        for value, spec in zip(fields, CRON_FIELDS):
            _validate_field(value, spec)

        return cls(*fields)

    @classmethod
    def is_valid(cls, text: str) -> bool:
        try:
            cls.parse(text)
        except ScheduleValidationError:
            return False
        return True

    def __str__(self) -> str:
        return " ".join((self.minute, self.hour, self.day, self.month, self.weekday))

    def describe(self) -> str:
        """Human description of when the expression fires.

        Common daily, weekly and hourly patterns are spelled out; anything
        else is returned as the raw expression.
        """
        expression = str(self)

        interval = _STEP.match(self.hour)
        if self.minute == "0" and interval and (self.day, self.month, self.weekday) == ("*", "*", "*"):
            hours = int(interval.group(1))
            return "Every hour" if hours == 1 else f"Every {hours} hours"

        if not (self.minute.isdigit() and self.hour.isdigit()) or (self.day, self.month) != ("*", "*"):
            return expression

        at = _clock_time(int(self.hour), int(self.minute))
        if self.weekday == "*":
            return f"Every day at {at}"
        if self.weekday.isdigit():
            return f"Every {WEEKDAY_NAMES[int(self.weekday)]} at {at}"
        return expression


def _clock_time(hour: int, minute: int) -> str:
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"


@runtime_checkable
class ScheduleStore(Protocol):
    """External store of cron entries, one line per entry."""

    def list_entries(self) -> List[str]:
        ...

    def upsert_entry(self, marker: str, line: str) -> None:
        """Replace every entry carrying ``marker`` with ``line``."""
        ...

    def remove_entry(self, marker: str) -> bool:
        """Remove every entry carrying ``marker``; False if there was none."""
        ...

    def snapshot(self) -> str:
        """Full current contents, for backup before a change."""
        ...


def is_managed_entry(line: str, marker: str) -> bool:
    """Whether a cron line carries this system's marker comment."""
    _, sep, comment = line.partition("#")
    return bool(sep) and comment.strip() == marker


class InMemoryScheduleStore:
    """Schedule store kept in memory.

    Records every call in ``calls`` so that callers can verify which store
    operations ran.
    """

    def __init__(self, entries: Optional[List[str]] = None) -> None:
        self.entries: List[str] = list(entries or [])
        self.calls: List[str] = []

    def list_entries(self) -> List[str]:
        self.calls.append("list_entries")
        return list(self.entries)

    def upsert_entry(self, marker: str, line: str) -> None:
        self.calls.append("upsert_entry")
        self.entries = [e for e in self.entries if not is_managed_entry(e, marker)] + [line]

    def remove_entry(self, marker: str) -> bool:
        self.calls.append("remove_entry")
        kept = [e for e in self.entries if not is_managed_entry(e, marker)]
        removed = len(kept) != len(self.entries)
        self.entries = kept
        return removed

    def snapshot(self) -> str:
        self.calls.append("snapshot")
        return "".join(f"{entry}\n" for entry in self.entries)


class CrontabScheduleStore:
    """The current user's crontab, read and written through ``crontab``."""

    def __init__(self, crontab_binary: str = "crontab", *, timeout: float = 30.0) -> None:
        self.crontab_binary = crontab_binary
        self.timeout = timeout

    def _run(self, args: List[str], *, input_text: Optional[str] = None) -> subprocess.CompletedProcess:
        return subprocess.run(
            [self.crontab_binary, *args],
            input=input_text,
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=False,
        )

    def _read(self) -> str:
        try:
            completed = self._run(["-l"])
        except (OSError, subprocess.TimeoutExpired) as e:
            raise SchedulerError(
                f"Cannot run {self.crontab_binary} -l: {e}",
                code=ErrorCodes.SCHEDULE_STORE_READ_FAILED,
                cause=e,
            )

        if completed.returncode != 0:
            # crontab -l fails when the user has no crontab yet
            if "no crontab" in completed.stderr.lower():
                return ""
            raise SchedulerError(
                f"{self.crontab_binary} -l exited with {completed.returncode}: "
                f"{completed.stderr.strip()}",
                code=ErrorCodes.SCHEDULE_STORE_READ_FAILED,
            )
        return completed.stdout

    def _write(self, lines: List[str]) -> None:
        content = "".join(f"{line}\n" for line in lines)
        try:
            completed = self._run(["-"], input_text=content)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise SchedulerError(
                f"Cannot run {self.crontab_binary} -: {e}",
                code=ErrorCodes.SCHEDULE_STORE_WRITE_FAILED,
                cause=e,
            )

        if completed.returncode != 0:
            raise SchedulerError(
                f"{self.crontab_binary} rejected the new crontab: {completed.stderr.strip()}",
                code=ErrorCodes.SCHEDULE_STORE_WRITE_FAILED,
            )

    def list_entries(self) -> List[str]:
        return [line for line in self._read().splitlines() if line.strip()]

    def upsert_entry(self, marker: str, line: str) -> None:
        entries = [e for e in self._read().splitlines() if not is_managed_entry(e, marker)]
        self._write(entries + [line])

    def remove_entry(self, marker: str) -> bool:
        current = self._read().splitlines()
        kept = [e for e in current if not is_managed_entry(e, marker)]
        if len(kept) == len(current):
            return False
        self._write(kept)
        return True

    def snapshot(self) -> str:
        return self._read()


@dataclass(frozen=True)
class ScheduleStatus:
    active: bool
    expression: Optional[str] = None
    next_run_description: Optional[str] = None
    command: Optional[str] = None


@dataclass(frozen=True)
class ScheduleTemplate:
    expression: str
    description: str
    category: str


SCHEDULE_TEMPLATES: Tuple[ScheduleTemplate, ...] = (
    ScheduleTemplate("0 3 * * 0", "Every Sunday at 3:00 AM", "weekly (recommended)"),
    ScheduleTemplate("0 2 * * 6", "Every Saturday at 2:00 AM", "weekly (recommended)"),
    ScheduleTemplate("0 3 * * *", "Every day at 3:00 AM", "daily"),
    ScheduleTemplate("30 2 * * *", "Every day at 2:30 AM", "daily"),
    ScheduleTemplate("0 3 * * 0,3", "Sunday and Wednesday at 3:00 AM", "several times a week"),
    ScheduleTemplate("0 3 * * 1,4", "Monday and Thursday at 3:00 AM", "several times a week"),
    ScheduleTemplate("0 3 1 * *", "First day of the month at 3:00 AM", "monthly"),
    ScheduleTemplate("0 3 15 * *", "15th of the month at 3:00 AM", "monthly"),
)


class MaintenanceScheduler(BaseComponent[SchedulerSettings]):
    """Installs, removes and reports the maintenance cron entry.

    Args:
        config: Scheduler settings
        store: Cron store, defaults to the user's crontab
        clock: Returns the current time; used for snapshot file names
    """

    component_name = "Scheduler"

    def __init__(
        self,
        config: SchedulerSettings,
        store: Optional[ScheduleStore] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        super().__init__(config)
        self.store = store if store is not None else CrontabScheduleStore(config.crontab_binary)
        self._clock = clock or datetime.now

    def entry_line(self, expression: CronExpression) -> str:
        return f"{expression} {self.config.command} # {self.config.marker}"

    def test(self, expression: Optional[str] = None) -> CronExpression:
        """Validate ``expression`` without touching the store.

        Raises:
            ScheduleValidationError: If the expression is malformed
        """
        return CronExpression.parse(expression or self.config.default_schedule)

    def install(self, expression: Optional[str] = None) -> ScheduleStatus:
        """Install or replace the maintenance entry.

        Args:
            expression: Cron expression, defaults to the configured schedule

        Raises:
            ScheduleValidationError: If the expression is malformed; the store is not accessed
            SchedulerError: If the store cannot be snapshotted, read or written
        """
        cron = self.test(expression)
        snapshot_path = self._snapshot()
        self.store.upsert_entry(self.config.marker, self.entry_line(cron))

        self.logger.info(
            "Maintenance schedule installed",
            expression=str(cron),
            description=cron.describe(),
            snapshot=str(snapshot_path) if snapshot_path else None,
        )
        return ScheduleStatus(True, str(cron), cron.describe(), self.config.command)

    def remove(self) -> bool:
        """Remove the maintenance entry, returning False if none was installed."""
        snapshot_path = self._snapshot()
        removed = self.store.remove_entry(self.config.marker)
        if removed:
            self.logger.info(
                "Maintenance schedule removed",
                snapshot=str(snapshot_path) if snapshot_path else None,
            )
        else:
            self.logger.info("No maintenance schedule installed")
        return removed

    def status(self) -> ScheduleStatus:
        for line in self.store.list_entries():
            if not is_managed_entry(line, self.config.marker):
                continue

            fields = line.split("#", 1)[0].split()
            expression = " ".join(fields[:5])
            command = " ".join(fields[5:]) or None
            try:
                description = CronExpression.parse(expression).describe()
            except ScheduleValidationError:
                description = expression
            return ScheduleStatus(True, expression, description, command)

        return ScheduleStatus(False)

    def templates(self) -> List[ScheduleTemplate]:
        return list(SCHEDULE_TEMPLATES)

    def _snapshot(self) -> Optional[Path]:
        """Write the store's current contents to a timestamped file.

        Returns:
            Snapshot path, or None when the store is empty

        Raises:
            SchedulerError: If the snapshot cannot be written
        """
        content = self.store.snapshot()
        if not content.strip():
            self.logger.debug("Cron store empty, no snapshot written")
            return None

        path = self.config.snapshot_dir / f"crontab-backup-{self._clock():%Y%m%d_%H%M%S}.txt"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise SchedulerError(
                f"Cannot write cron snapshot {path}: {e}",
                code=ErrorCodes.SCHEDULE_STORE_WRITE_FAILED,
                context={"snapshot": str(path)},
                cause=e,
            )
        return path
