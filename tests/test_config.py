"""Tests for the sqlmigrate configuration system."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from sqlmigrate.config.loader import (
    apply_env_overrides,
    find_config_file,
    get_config_search_paths,
    load_config,
    load_toml_file,
)
from sqlmigrate.config.schema import (
    DatabaseConfig,
    LoggingConfig,
    MigrationsConfig,
    SqlMigrateConfig,
)


class TestSchemaDefaults:
    """Test default values in schema models."""

    def test_database_config_defaults(self):
        """Test DatabaseConfig has correct defaults."""
        config = DatabaseConfig()
        assert config.url == "sqlite+aiosqlite:///./data/app.db"
        assert config.echo is False

    def test_migrations_config_defaults(self):
        """Test MigrationsConfig has correct defaults."""
        config = MigrationsConfig()
        assert config.path == Path("migrations")
        assert config.table == "migrations"
        assert config.check_hash is False
        assert config.validate_down is False
        assert config.force is False

    def test_logging_config_defaults(self):
        config = LoggingConfig()
        assert config.level == "INFO"

    def test_sqlmigrate_config_defaults(self):
        """Test SqlMigrateConfig nests the section defaults."""
        config = SqlMigrateConfig()
        assert isinstance(config.database, DatabaseConfig)
        assert isinstance(config.migrations, MigrationsConfig)
        assert isinstance(config.logging, LoggingConfig)

    def test_rejects_unknown_force(self):
        with pytest.raises(ValidationError):
            MigrationsConfig(force="first")


class TestConfigSearchPaths:
    """Test configuration file search paths."""

    def test_config_search_paths_order(self):
        """Test config search paths are in correct priority order."""
        paths = get_config_search_paths()
        assert len(paths) == 3
        assert paths[0] == Path.cwd() / "sqlmigrate.toml"
        assert paths[1] == Path.home() / ".config" / "sqlmigrate" / "config.toml"
        assert paths[2] == Path("/etc/sqlmigrate/config.toml")


class TestTomlLoading:
    """Test TOML file loading."""

    def test_load_toml_file(self, tmp_path):
        """Test loading a valid TOML file."""
        toml_content = """
[database]
url = "postgresql+asyncpg://localhost/app"

[migrations]
path = "db/migrations"
check_hash = true
"""
        config_file = tmp_path / "sqlmigrate.toml"
        config_file.write_text(toml_content)

        data = load_toml_file(config_file)
        assert data["database"]["url"] == "postgresql+asyncpg://localhost/app"
        assert data["migrations"]["path"] == "db/migrations"
        assert data["migrations"]["check_hash"] is True

    def test_load_config_from_file(self, tmp_path):
        """Test load_config with a specific file."""
        toml_content = """
[migrations]
table = "schema_history"
force = "last"

[logging]
level = "DEBUG"
"""
        config_file = tmp_path / "sqlmigrate.toml"
        config_file.write_text(toml_content)

        config = load_config(config_file)
        assert config.migrations.table == "schema_history"
        assert config.migrations.force == "last"
        assert config.logging.level == "DEBUG"
        # Defaults should still apply
        assert config.migrations.path == Path("migrations")
        assert config.database.url == "sqlite+aiosqlite:///./data/app.db"


class TestEnvOverrides:
    """Test environment variable overrides."""

    def test_apply_database_overrides(self):
        config_dict = {}
        with patch.dict(os.environ, {"SQLMIGRATE_DATABASE_URL": "sqlite+aiosqlite:///other.db"}):
            apply_env_overrides(config_dict)
        assert config_dict["database"]["url"] == "sqlite+aiosqlite:///other.db"

    def test_apply_migrations_overrides(self):
        """Test env values land in an existing section."""
        config_dict = {"migrations": {"table": "from_file"}}
        with patch.dict(
            os.environ,
            {"SQLMIGRATE_TABLE": "from_env", "SQLMIGRATE_MIGRATIONS_PATH": "sql"},
        ):
            apply_env_overrides(config_dict)
        assert config_dict["migrations"]["table"] == "from_env"
        assert config_dict["migrations"]["path"] == "sql"

    def test_apply_boolean_override_true(self):
        config_dict = {}
        with patch.dict(os.environ, {"SQLMIGRATE_CHECK_HASH": "true"}):
            apply_env_overrides(config_dict)
        assert config_dict["migrations"]["check_hash"] is True

    def test_apply_boolean_override_false(self):
        config_dict = {"migrations": {"validate_down": True}}
        with patch.dict(os.environ, {"SQLMIGRATE_VALIDATE_DOWN": "no"}):
            apply_env_overrides(config_dict)
        assert config_dict["migrations"]["validate_down"] is False

    @pytest.mark.parametrize("value,expected", [("last", "last"), ("LAST", "last"), ("", False)])
    def test_apply_force_override(self, value, expected):
        config_dict = {}
        with patch.dict(os.environ, {"SQLMIGRATE_FORCE": value}):
            apply_env_overrides(config_dict)
        assert config_dict["migrations"]["force"] == expected

    def test_log_level_is_uppercased(self):
        config_dict = {}
        with patch.dict(os.environ, {"SQLMIGRATE_LOG_LEVEL": "warning"}):
            apply_env_overrides(config_dict)
        assert config_dict["logging"]["level"] == "WARNING"

    def test_env_overrides_file(self, tmp_path):
        """Test environment variables win over the config file."""
        config_file = tmp_path / "sqlmigrate.toml"
        config_file.write_text('[migrations]\ntable = "from_file"\n')

        with patch.dict(os.environ, {"SQLMIGRATE_TABLE": "from_env"}):
            config = load_config(config_file)
        assert config.migrations.table == "from_env"


class TestFindConfigFile:
    """Test find_config_file function."""

    def test_find_config_file_in_cwd(self, tmp_path, monkeypatch):
        """Test finding config file in current directory."""
        config_file = tmp_path / "sqlmigrate.toml"
        config_file.write_text("[migrations]\ntable = \"m\"\n")

        monkeypatch.chdir(tmp_path)
        found = find_config_file()
        assert found == config_file

    def test_find_config_file_not_found(self, tmp_path, monkeypatch):
        """Test when no config file exists."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(Path, "home", lambda: tmp_path / "home")
        with patch("sqlmigrate.config.loader.get_config_search_paths") as search_paths:
            search_paths.return_value = [tmp_path / "sqlmigrate.toml"]
            found = find_config_file()
        assert found is None
