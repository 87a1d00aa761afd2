"""Tests for vault service probes."""

import stat

import pytest

from vaultmaint.config.models import ServiceSettings
from vaultmaint.core.exceptions import ErrorCodes, MaintenanceError
from vaultmaint.maintenance.service import DockerServiceProbe, ServiceProbe, StaticServiceProbe


@pytest.fixture
def fake_docker(temp_dir):
    """Write a stand-in docker executable with the given shell body."""

    def _write(body: str) -> str:
        path = temp_dir / "docker"
        path.write_text(f"#!/bin/sh\n{body}\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR)
        return str(path)

    return _write


def probe_for(binary: str) -> DockerServiceProbe:
    return DockerServiceProbe(ServiceSettings(docker_binary=binary, container_name="vaultwarden"))


class TestDockerServiceProbe:
    """Liveness through the docker CLI."""

    def test_command(self):
        """Test the filter arguments."""
        command = DockerServiceProbe().command()

        assert command[:2] == ["docker", "ps"]
        assert "name=vaultwarden" in command
        assert "status=running" in command

    def test_running(self, fake_docker):
        """Test an exact name in the output means running."""
        assert probe_for(fake_docker("echo vaultwarden")).is_running() is True

    def test_substring_match_is_not_running(self, fake_docker):
        """Test similarly named containers do not count."""
        probe = probe_for(fake_docker("echo vaultwarden-backup; echo old_vaultwarden"))

        assert probe.is_running() is False

    def test_nothing_running(self, fake_docker):
        """Test empty output means stopped."""
        assert probe_for(fake_docker("exit 0")).is_running() is False

    def test_docker_error(self, fake_docker):
        """Test a failing docker call raises."""
        probe = probe_for(fake_docker("echo 'Cannot connect to the Docker daemon' >&2; exit 1"))

        with pytest.raises(MaintenanceError) as exc_info:
            probe.is_running()

        assert exc_info.value.code == ErrorCodes.SERVICE_PROBE_FAILED
        assert "Docker daemon" in str(exc_info.value)

    def test_missing_binary(self, temp_dir):
        """Test an absent docker executable raises."""
        with pytest.raises(MaintenanceError) as exc_info:
            probe_for(str(temp_dir / "no-docker")).is_running()

        assert exc_info.value.code == ErrorCodes.SERVICE_PROBE_FAILED


class TestStaticServiceProbe:
    """Fixed answers."""

    def test_answers(self):
        """Test the probe returns what it was given."""
        assert StaticServiceProbe(running=True).is_running() is True
        assert StaticServiceProbe(running=False).is_running() is False

    def test_protocol(self):
        """Test both probes satisfy the protocol."""
        assert isinstance(StaticServiceProbe(running=False), ServiceProbe)
        assert isinstance(DockerServiceProbe(), ServiceProbe)
