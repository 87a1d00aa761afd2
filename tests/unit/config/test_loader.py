"""Unit tests for layered configuration loading."""

from pathlib import Path

import pytest
import yaml

from vaultmaint.config.loader import environment_overrides, load_config
from vaultmaint.core.exceptions import ConfigurationError, ErrorCodes


@pytest.fixture
def config_file(temp_dir: Path) -> Path:
    """YAML file overriding a few settings."""
    path = temp_dir / "vaultmaint.yaml"
    with open(path, "w") as f:
        yaml.dump(
            {
                "database": {"path": "/srv/vault/db.sqlite3"},
                "thresholds": {"wal_size_critical_mb": 20, "fragmentation_critical": 1.6},
                "logging": {"level": "debug"},
            },
            f,
        )
    return path


class TestEnvironmentOverrides:
    """Test translation of environment variables."""

    def test_section_variables(self):
        """Test VAULTMAINT_<SECTION>__<FIELD> variables."""
        overrides = environment_overrides(
            {
                "VAULTMAINT_THRESHOLDS__WAL_SIZE_CRITICAL_MB": "25",
                "VAULTMAINT_SERVICE__CONTAINER_NAME": "bitwarden",
                "HOME": "/root",
            }
        )

        assert overrides == {
            "thresholds": {"wal_size_critical_mb": "25"},
            "service": {"container_name": "bitwarden"},
        }

    def test_legacy_database_variable(self):
        """Test the SQLITE_DB_PATH shortcut."""
        assert environment_overrides({"SQLITE_DB_PATH": "/srv/db.sqlite3"}) == {
            "database": {"path": "/srv/db.sqlite3"}
        }

    def test_prefixed_variables_without_section_ignored(self):
        """Test VAULTMAINT_CONFIG and section-less names are not settings."""
        assert environment_overrides(
            {"VAULTMAINT_CONFIG": "/etc/vaultmaint.yaml", "VAULTMAINT_DEBUG": "1"}
        ) == {}


class TestLoadConfig:
    """Test load_config source precedence and error handling."""

    def test_defaults(self):
        """Test built-in defaults with an empty environment."""
        config = load_config(environ={})

        assert config.database.path == Path("data/bw/data/bwdata/db.sqlite3")
        assert config.thresholds.wal_size_critical_mb == 10.0
        assert config.scheduler.marker == "vaultmaint-sqlite-maintenance"

    def test_yaml_file(self, config_file):
        """Test values from a YAML file."""
        config = load_config(config_file, environ={})

        assert config.database.path == Path("/srv/vault/db.sqlite3")
        assert config.thresholds.wal_size_critical_mb == 20
        assert config.thresholds.fragmentation_critical == 1.6
        assert config.thresholds.wal_size_warning_mb == 1.0
        assert config.logging.level == "DEBUG"

    def test_config_path_from_environment(self, config_file):
        """Test VAULTMAINT_CONFIG names the YAML file."""
        config = load_config(environ={"VAULTMAINT_CONFIG": str(config_file)})

        assert config.database.path == Path("/srv/vault/db.sqlite3")

    def test_environment_beats_file(self, config_file):
        """Test environment variables override the file per key."""
        config = load_config(
            config_file,
            environ={
                "VAULTMAINT_THRESHOLDS__WAL_SIZE_CRITICAL_MB": "30",
                "SQLITE_DB_PATH": "/data/db.sqlite3",
            },
        )

        assert config.thresholds.wal_size_critical_mb == 30
        assert config.thresholds.fragmentation_critical == 1.6
        assert config.database.path == Path("/data/db.sqlite3")

    def test_overrides_beat_environment(self):
        """Test explicit overrides win over everything else."""
        config = load_config(
            environ={"SQLITE_DB_PATH": "/data/db.sqlite3"},
            overrides={"database": {"path": "/cli/db.sqlite3"}},
        )

        assert config.database.path == Path("/cli/db.sqlite3")

    def test_missing_file(self, temp_dir):
        """Test a missing file raises ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(temp_dir / "missing.yaml", environ={})

        assert exc_info.value.code == ErrorCodes.CONFIG_NOT_FOUND

    def test_malformed_yaml(self, temp_dir):
        """Test unparseable YAML raises ConfigurationError."""
        path = temp_dir / "broken.yaml"
        path.write_text("database: [unclosed\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path, environ={})

        assert exc_info.value.code == ErrorCodes.CONFIG_INVALID

    def test_non_mapping_yaml(self, temp_dir):
        """Test a YAML list is rejected."""
        path = temp_dir / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path, environ={})

        assert exc_info.value.code == ErrorCodes.CONFIG_INVALID

    def test_empty_yaml_uses_defaults(self, temp_dir):
        """Test an empty file is the same as no file."""
        path = temp_dir / "empty.yaml"
        path.write_text("")

        assert load_config(path, environ={}).thresholds.fragmentation_critical == 1.5

    def test_invalid_value(self):
        """Test a validation failure is reported with its location."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(environ={"VAULTMAINT_THRESHOLDS__WAL_SIZE_CRITICAL_MB": "lots"})

        error = exc_info.value
        assert error.code == ErrorCodes.CONFIG_VALIDATION_FAILED
        assert error.context["errors"][0]["location"] == "thresholds.wal_size_critical_mb"

    def test_inconsistent_thresholds(self):
        """Test threshold tier consistency is enforced through the loader."""
        with pytest.raises(ConfigurationError):
            load_config(
                environ={},
                overrides={"thresholds": {"fragmentation_warning": 1.8}},
            )
