"""Vault service liveness probes.

The executor asks a ServiceProbe whether the vault service is running
before reclaiming space; the answer decides whether an unattended run
may rewrite the database file.
"""

import subprocess
from typing import List, Optional, Protocol, runtime_checkable

from ..config.models import ServiceSettings
from ..core.exceptions import ErrorCodes, MaintenanceError


@runtime_checkable
class ServiceProbe(Protocol):
    def is_running(self) -> bool:
        """Return True when the vault service is live.

        Raises:
            MaintenanceError: If liveness cannot be determined
        """
        ...


class DockerServiceProbe:
    """Asks the docker CLI whether the vault container is running.

    Example:
        >>> probe = DockerServiceProbe(ServiceSettings(container_name="vaultwarden"))
        >>> probe.is_running()
        True
    """

    def __init__(self, settings: Optional[ServiceSettings] = None) -> None:
        self.settings = settings or ServiceSettings()

    def command(self) -> List[str]:
        return [
            self.settings.docker_binary,
            "ps",
            "--filter", f"name={self.settings.container_name}",
            "--filter", "status=running",
            "--format", "{{.Names}}",
        ]

    def is_running(self) -> bool:
        try:
            completed = subprocess.run(
                self.command(),
                capture_output=True,
                text=True,
                timeout=self.settings.probe_timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise MaintenanceError(
                f"Cannot query docker for {self.settings.container_name}: {e}",
                code=ErrorCodes.SERVICE_PROBE_FAILED,
                context={"container": self.settings.container_name},
                cause=e,
            )

        if completed.returncode != 0:
            raise MaintenanceError(
                f"docker ps exited with {completed.returncode}: {completed.stderr.strip()}",
                code=ErrorCodes.SERVICE_PROBE_FAILED,
                context={"container": self.settings.container_name},
            )

        # docker's name filter is a substring match
        names = completed.stdout.split()
        return self.settings.container_name in names


class StaticServiceProbe:
    """Probe with a fixed answer, for hosts without a container runtime."""

    def __init__(self, running: bool) -> None:
        self.running = running

    def is_running(self) -> bool:
        return self.running

    def __repr__(self) -> str:
        return f"StaticServiceProbe(running={self.running})"
