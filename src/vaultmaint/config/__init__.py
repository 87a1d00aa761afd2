"""VaultMaint configuration.

Example:
    >>> from vaultmaint.config import load_config
    >>> config = load_config()
    >>> config.database.path
    PosixPath('data/bw/data/bwdata/db.sqlite3')
"""

from .models import (
    BackupSettings,
    BaseConfig,
    DatabaseSettings,
    LockSettings,
    LoggingConfig,
    MaintenanceConfig,
    ReportSettings,
    SchedulerSettings,
    ServiceSettings,
    Thresholds,
)
from .loader import environment_overrides, load_config

__all__ = [
    "BaseConfig",
    "Thresholds",
    "DatabaseSettings",
    "BackupSettings",
    "ReportSettings",
    "SchedulerSettings",
    "ServiceSettings",
    "LockSettings",
    "LoggingConfig",
    "MaintenanceConfig",
    "load_config",
    "environment_overrides",
]
