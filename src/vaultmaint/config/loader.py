"""Layered configuration loading.

Sources, lowest priority first:

1. Built-in defaults of the pydantic models
2. A YAML file (``--config`` or ``VAULTMAINT_CONFIG``)
3. Environment variables ``VAULTMAINT_<SECTION>__<FIELD>`` plus the
   legacy ``SQLITE_DB_PATH`` shortcut

The highest-priority source wins per key; nested sections are deep merged.

Example:
    >>> config = load_config(Path("/etc/vaultmaint.yaml"))
    >>> config.thresholds.fragmentation_critical
    1.5
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ConfigurationError, ErrorCodes
from ..core.utils import DictUtils
from .models import MaintenanceConfig

ENV_PREFIX = "VAULTMAINT_"
ENV_SECTION_SEPARATOR = "__"
CONFIG_PATH_VARIABLE = "VAULTMAINT_CONFIG"

# Environment variables kept from the shell tooling this engine replaces
LEGACY_ENVIRONMENT_KEYS = {
    "SQLITE_DB_PATH": "database.path",
}


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read one YAML configuration file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping
    """
    if not path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            code=ErrorCodes.CONFIG_NOT_FOUND,
            context={"path": str(path)},
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Cannot read configuration file {path}: {e}",
            code=ErrorCodes.CONFIG_INVALID,
            context={"path": str(path)},
            cause=e,
        )

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain a mapping",
            code=ErrorCodes.CONFIG_INVALID,
            context={"path": str(path), "type": type(data).__name__},
        )
    return data


def environment_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Translate environment variables into a nested override mapping.

    ``VAULTMAINT_THRESHOLDS__WAL_SIZE_CRITICAL_MB=20`` becomes
    ``{"thresholds": {"wal_size_critical_mb": "20"}}``; pydantic coerces
    the string values during validation.

    Example:
        >>> environment_overrides({"SQLITE_DB_PATH": "/srv/db.sqlite3"})
        {'database': {'path': '/srv/db.sqlite3'}}
    """
    overrides: Dict[str, Any] = {}

    for variable, key_path in LEGACY_ENVIRONMENT_KEYS.items():
        if environ.get(variable):
            DictUtils.set_nested_value(overrides, key_path, environ[variable])

    for variable, value in environ.items():
        if not variable.startswith(ENV_PREFIX) or variable == CONFIG_PATH_VARIABLE:
            continue
        key = variable[len(ENV_PREFIX):].lower()
        if ENV_SECTION_SEPARATOR not in key:
            continue
        DictUtils.set_nested_value(overrides, key, value, separator=ENV_SECTION_SEPARATOR)

    return overrides


def load_config(
    path: Optional[Union[str, Path]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> MaintenanceConfig:
    """Build the effective configuration.

    Args:
        path: YAML file; falls back to ``VAULTMAINT_CONFIG`` when unset
        environ: Environment mapping, defaults to ``os.environ``
        overrides: Highest-priority values (command line flags)

    Returns:
        Frozen MaintenanceConfig

    Raises:
        ConfigurationError: If any source is unreadable or a value is invalid
    """
    environ = os.environ if environ is None else environ

    if path is None and environ.get(CONFIG_PATH_VARIABLE):
        path = environ[CONFIG_PATH_VARIABLE]

    merged: Dict[str, Any] = {}
    if path is not None:
        merged = DictUtils.deep_merge(merged, _read_yaml(Path(path)))
    merged = DictUtils.deep_merge(merged, environment_overrides(environ))
    if overrides:
        merged = DictUtils.deep_merge(merged, overrides)

    try:
        return MaintenanceConfig(**merged)
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e.error_count()} error(s)",
            code=ErrorCodes.CONFIG_VALIDATION_FAILED,
            context={
                "errors": [
                    {"location": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ],
                "source": str(path) if path is not None else None,
            },
            cause=e,
        )
