"""Base classes for VaultMaint components.

This module provides the foundational base class that the maintenance
components (collector, executor, reporter, scheduler) inherit from,
ensuring consistent configuration handling and logging.

Classes:
    BaseComponent: Generic base class for all VaultMaint components

Example:
    >>> class Reporter(BaseComponent[ReportSettings]):
    ...     component_name = "Reporter"
    ...     def record(self, report) -> Path:
    ...         ...
"""

import time
from abc import ABC
from typing import ClassVar, Generic, TypeVar

from .exceptions import ValidationError

# Type variable for component configuration
T = TypeVar("T")


class BaseComponent(Generic[T], ABC):
    """Base class for all VaultMaint components.

    Provides configuration storage and a component logger.

    Type Parameters:
        T: Type of configuration object this component accepts

    Attributes:
        component_name: Name of the component for logging and identification
    """

    component_name: ClassVar[str] = "BaseComponent"

    def __init__(self, config: T) -> None:
        """Initialize base component.

        Args:
            config: Configuration object for this component

        Raises:
            ValidationError: If configuration is None
        """
        if config is None:
            raise ValidationError(
                "Configuration cannot be None",
                code="CONFIG_NULL",
                context={"component": self.component_name},
            )

        self._config: T = config
        self._creation_time: float = time.time()

        # Imported here: the logging package depends on core
        from ..logging import get_logger

        self.logger = get_logger(f"vaultmaint.{self.component_name.lower()}")

    @property
    def config(self) -> T:
        """Get component configuration."""
        return self._config

    @property
    def uptime(self) -> float:
        """Get component uptime in seconds."""
        return time.time() - self._creation_time

    def __repr__(self) -> str:
        """Return string representation of component."""
        return (
            f"{self.__class__.__name__}("
            f"name={self.component_name!r}, "
            f"uptime={self.uptime:.2f}s)"
        )
