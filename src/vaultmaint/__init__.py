"""VaultMaint - Intelligent SQLite maintenance for self-hosted password vaults.

VaultMaint measures a vault's SQLite database, decides which maintenance
operations it needs, and runs them safely: in a fixed order, bracketed by
integrity checks, with a backup before any space reclamation and never
reclaiming space behind a running vault during unattended runs.

Modules:
    core: Base classes, exceptions and utilities
    config: Layered configuration
    logging: Structured logging framework
    maintenance: Metrics, analysis, execution, scheduling and reports
    cli: The ``vaultmaint`` command

Example:
    >>> from vaultmaint.config import load_config
    >>> from vaultmaint.maintenance import MaintenanceEngine, RunMode
    >>>
    >>> engine = MaintenanceEngine(load_config())
    >>> engine.analyze().kinds
    []
    >>> report = engine.run_intelligent(RunMode.INTERACTIVE)
"""

__version__ = "0.1.0"
__title__ = "VaultMaint"
__description__ = "Intelligent SQLite maintenance for self-hosted password vaults"
__license__ = "MIT"

from . import config, core, logging, maintenance

__all__ = [
    "core",
    "config",
    "logging",
    "maintenance",
    "__version__",
    "__title__",
    "__description__",
    "__license__",
]
