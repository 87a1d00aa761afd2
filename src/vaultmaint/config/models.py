"""Configuration models for the VaultMaint maintenance engine.

This module defines Pydantic models for all configuration objects used
throughout VaultMaint. These models provide validation, type safety, and
serialization. Every model is frozen: configuration is built once at
process start and passed explicitly to the components that need it.

Classes:
    BaseConfig: Base configuration class
    Thresholds: Decision thresholds for the analyzer
    DatabaseSettings: Location of the SQLite database
    BackupSettings: Pre-reclaim backup location
    ReportSettings: Report storage and retention
    SchedulerSettings: Cron scheduling defaults
    ServiceSettings: Vault service liveness probe
    LockSettings: Run lock location
    LoggingConfig: Logging configuration
    MaintenanceConfig: Root configuration

Example:
    >>> thresholds = Thresholds(fragmentation_critical=1.6)
    >>> config = MaintenanceConfig(thresholds=thresholds)
    >>> config.thresholds.wal_size_critical_mb
    10.0
"""

import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


class BaseConfig(BaseModel):
    """Base configuration class with common functionality.

    This class provides the foundation for all configuration objects
    including validation, environment variable resolution, and
    serialization.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        use_enum_values=True,
        validate_default=True,
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def resolve_environment_variables(cls, values: Any) -> Any:
        """Resolve environment variables in configuration values.

        Supports ${VAR_NAME} and ${VAR_NAME:default_value} syntax.

        Args:
            values: Configuration values

        Returns:
            Values with environment variables resolved
        """
        def replace_env_var(match: "re.Match[str]") -> str:
            var_spec = match.group(1)
            if ":" in var_spec:
                var_name, default = var_spec.split(":", 1)
            else:
                var_name, default = var_spec, ""
            return os.getenv(var_name, default)

        def resolve_value(value: Any) -> Any:
            if isinstance(value, str):
                return _ENV_PATTERN.sub(replace_env_var, value)
            elif isinstance(value, dict):
                return {k: resolve_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [resolve_value(item) for item in value]
            else:
                return value

        if isinstance(values, dict):
            return {key: resolve_value(value) for key, value in values.items()}
        return values


class Thresholds(BaseConfig):
    """Decision thresholds for the maintenance analyzer.

    Sizes are expressed in megabytes, freelist tiers in percent of all
    pages and fragmentation as the ratio of file size to logical size.

    Attributes:
        fragmentation_warning: Ratio that, combined with free pages, warrants reclaiming
        fragmentation_critical: Ratio that always warrants a high-priority reclaim
        fragmentation_modest: Ratio worth reclaiming on huge databases
        freelist_warning_percent: Free page share paired with the warning ratio
        freelist_critical_percent: Free page share that warrants reclaiming on its own
        wal_size_warning_mb: WAL size worth merging on small databases
        wal_size_critical_mb: WAL size that always warrants a checkpoint
        db_size_minimal_activity_mb: Size above which the optimizer hint pays off
        db_size_sizeable_mb: Size above which moderate statistics are refreshed
        db_size_large_mb: Size above which a warning-sized WAL is ignored
        db_size_huge_mb: Size above which modest fragmentation is reclaimed
        statistics_fresh_hours: Statistics younger than this are fresh
        statistics_stale_days: Statistics older than this are stale
    """

    fragmentation_warning: float = Field(1.3, ge=1.0, description="Fragmentation warning ratio")
    fragmentation_critical: float = Field(1.5, ge=1.0, description="Fragmentation critical ratio")
    fragmentation_modest: float = Field(1.2, ge=1.0, description="Modest fragmentation ratio")
    freelist_warning_percent: float = Field(10.0, ge=0, le=100, description="Freelist warning %")
    freelist_critical_percent: float = Field(15.0, ge=0, le=100, description="Freelist critical %")
    wal_size_warning_mb: float = Field(1.0, ge=0, description="WAL warning size in MB")
    wal_size_critical_mb: float = Field(10.0, ge=0, description="WAL critical size in MB")
    db_size_minimal_activity_mb: float = Field(1.0, ge=0, description="Minimal activity size in MB")
    db_size_sizeable_mb: float = Field(10.0, ge=0, description="Sizeable database size in MB")
    db_size_large_mb: float = Field(50.0, ge=0, description="Large database size in MB")
    db_size_huge_mb: float = Field(100.0, ge=0, description="Huge database size in MB")
    statistics_fresh_hours: float = Field(24.0, gt=0, description="Fresh statistics age in hours")
    statistics_stale_days: float = Field(7.0, gt=0, description="Stale statistics age in days")

    @model_validator(mode="after")
    def validate_tiers(self) -> "Thresholds":
        """Ensure every warning tier sits at or below its critical tier.

        Raises:
            ValueError: If tiers are inverted
        """
        pairs = [
            ("fragmentation_warning", "fragmentation_critical"),
            ("freelist_warning_percent", "freelist_critical_percent"),
            ("wal_size_warning_mb", "wal_size_critical_mb"),
            ("db_size_sizeable_mb", "db_size_large_mb"),
            ("db_size_large_mb", "db_size_huge_mb"),
        ]
        for lower, upper in pairs:
            if getattr(self, lower) > getattr(self, upper):
                raise ValueError(
                    f"{lower} ({getattr(self, lower)}) must be <= "
                    f"{upper} ({getattr(self, upper)})"
                )

        if self.statistics_fresh_hours > self.statistics_stale_days * 24:
            raise ValueError("statistics_fresh_hours must not exceed statistics_stale_days")

        return self

    @property
    def statistics_fresh_age(self) -> timedelta:
        """Age below which statistics count as fresh."""
        return timedelta(hours=self.statistics_fresh_hours)

    @property
    def statistics_stale_age(self) -> timedelta:
        """Age from which statistics count as stale."""
        return timedelta(days=self.statistics_stale_days)


class DatabaseSettings(BaseConfig):
    """Location of the vault's SQLite database.

    Attributes:
        path: Database file path
        wal_suffix: Suffix of the write-ahead log sibling file
        busy_timeout: Seconds to wait on a locked database
    """

    path: Path = Field(
        Path("data/bw/data/bwdata/db.sqlite3"), description="SQLite database file"
    )
    wal_suffix: str = Field("-wal", min_length=1, description="WAL file suffix")
    busy_timeout: float = Field(30.0, gt=0, description="Busy timeout in seconds")

    @property
    def wal_path(self) -> Path:
        """Path of the WAL sibling file."""
        return self.path.with_name(self.path.name + self.wal_suffix)


class BackupSettings(BaseConfig):
    """Where logical dumps are written before space is reclaimed."""

    directory: Path = Field(Path("data/backups"), description="Backup directory")
    filename_prefix: str = Field("maintenance-backup", min_length=1, description="Dump prefix")


class ReportSettings(BaseConfig):
    """Report storage and retention.

    Attributes:
        directory: Directory receiving one report file per run
        retention_days: Reports older than this are deleted
        enabled: Whether report files are written at all
    """

    directory: Path = Field(Path("data/maintenance_reports"), description="Report directory")
    retention_days: int = Field(30, ge=1, description="Report retention in days")
    enabled: bool = Field(True, description="Write report files")


class SchedulerSettings(BaseConfig):
    """Cron scheduling defaults.

    Attributes:
        default_schedule: Expression installed when none is given
        marker: Comment identifying this system's cron entry
        command: Command line the cron entry runs
        snapshot_dir: Where cron store snapshots are written
        crontab_binary: The crontab executable
    """

    default_schedule: str = Field("0 3 * * 0", description="Default cron expression")
    marker: str = Field("vaultmaint-sqlite-maintenance", min_length=1, description="Entry marker")
    command: str = Field("vaultmaint --cron", min_length=1, description="Scheduled command")
    snapshot_dir: Path = Field(Path("data/backup_logs"), description="Cron snapshot directory")
    crontab_binary: str = Field("crontab", min_length=1, description="crontab executable")

    @field_validator("marker")
    @classmethod
    def validate_marker(cls, v: str) -> str:
        """Markers end up inside a cron comment and must be a single line."""
        if "\n" in v or "#" in v:
            raise ValueError("Scheduler marker must be a single line without '#'")
        return v.strip()


class ServiceSettings(BaseConfig):
    """How the vault service's liveness is probed.

    Attributes:
        container_name: Name of the vault container
        docker_binary: The docker executable
        probe_timeout: Seconds before the probe gives up
    """

    container_name: str = Field("vaultwarden", min_length=1, description="Vault container name")
    docker_binary: str = Field("docker", min_length=1, description="docker executable")
    probe_timeout: float = Field(10.0, gt=0, description="Probe timeout in seconds")


class LockSettings(BaseConfig):
    """Run lock location."""

    directory: Path = Field(Path("data/locks"), description="Run lock directory")


class LoggingConfig(BaseConfig):
    """Logging configuration.

    Attributes:
        level: Log level
        format: Log format (json, text)
        file_path: Log file path
        max_file_size: Maximum log file size in bytes
        backup_count: Number of rotated files to keep
        console_output: Enable console output
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Logging level"
    )
    format: Literal["json", "text"] = Field("text", description="Log format")
    file_path: Optional[Path] = Field(None, description="Log file path")
    max_file_size: int = Field(10485760, gt=0, description="Max file size in bytes (10MB)")
    backup_count: int = Field(5, ge=0, description="Number of backup files")
    console_output: bool = Field(True, description="Enable console output")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Accept lower-case level names."""
        return v.upper() if isinstance(v, str) else v


class MaintenanceConfig(BaseConfig):
    """Root configuration for the maintenance engine.

    Example:
        >>> config = MaintenanceConfig(
        ...     database=DatabaseSettings(path=Path("/srv/vault/db.sqlite3")),
        ...     thresholds=Thresholds(wal_size_critical_mb=20),
        ... )
    """

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    thresholds: Thresholds = Field(default_factory=Thresholds)
    backup: BackupSettings = Field(default_factory=BackupSettings)
    reports: ReportSettings = Field(default_factory=ReportSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    lock: LockSettings = Field(default_factory=LockSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
