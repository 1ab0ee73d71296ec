"""
Unit tests for ConfigLoader class.

This module contains tests for environment configuration loading,
shared-block merging, module configuration lookup and error handling.
"""

import json
import pytest
import tempfile
from pathlib import Path
from unittest.mock import patch

from fleetgeo.config import ConfigLoader
from fleetgeo.exceptions import FleetGeoConfigurationError, FleetGeoValidationError


class TestConfigLoader:
    """Test suite for ConfigLoader class."""

    @pytest.fixture
    def temp_base_dir(self):
        """Create a temporary project root with a config/ directory."""
        with tempfile.TemporaryDirectory() as temp_dir:
            base = Path(temp_dir)
            (base / "config").mkdir()
            yield base

    @pytest.fixture
    def valid_environment_config(self):
        """Valid environment configuration with a shared block."""
        return {
            "shared": {
                "mongodb": {
                    "collection": "tracking_records",
                    "connect_timeout_seconds": 30
                },
                "processing": {
                    "max_workers": 1
                }
            },
            "environments": {
                "development": {
                    "mongodb": {
                        "uri": "mongodb://localhost:27017",
                        "database": "fleet_dev"
                    },
                    "logging": {
                        "level": "DEBUG",
                        "format": "standard"
                    }
                },
                "production": {
                    "mongodb": {
                        "uri": "mongodb://prod:27017",
                        "database": "fleet",
                        "collection": "positions"
                    },
                    "logging": {
                        "level": "INFO",
                        "format": "json"
                    },
                    "processing": {
                        "max_workers": 8
                    }
                }
            },
            "validation": {
                "required_environment_variables": ["FLEETGEO_TEST_TOKEN"]
            }
        }

    @pytest.fixture
    def config_loader(self, temp_base_dir, valid_environment_config):
        """ConfigLoader over a temporary project with a valid environment file."""
        with open(temp_base_dir / "config" / "environment_config.json", 'w') as f:
            json.dump(valid_environment_config, f)
        return ConfigLoader(base_dir=str(temp_base_dir))

    def test_init_default_config_dir(self, temp_base_dir):
        """Test config_dir defaults to <base_dir>/config."""
        loader = ConfigLoader(base_dir=str(temp_base_dir))
        assert loader.config_dir == temp_base_dir / "config"

    def test_init_custom_config_dir(self, temp_base_dir):
        """Test ConfigLoader initialization with custom config directory."""
        loader = ConfigLoader(config_dir=str(temp_base_dir), base_dir=str(temp_base_dir))
        assert loader.config_dir == temp_base_dir

    def test_load_environment_config_merges_shared(self, config_loader):
        """Test shared values fill in sections the environment leaves out."""
        config = config_loader.load_environment_config("development")

        assert config["mongodb"]["uri"] == "mongodb://localhost:27017"
        assert config["mongodb"]["collection"] == "tracking_records"  # From shared
        assert config["processing"]["max_workers"] == 1  # From shared
        assert config["logging"]["level"] == "DEBUG"

    def test_environment_values_override_shared(self, config_loader):
        """Test environment values win over shared values."""
        config = config_loader.load_environment_config("production")

        assert config["mongodb"]["collection"] == "positions"
        assert config["mongodb"]["connect_timeout_seconds"] == 30
        assert config["processing"]["max_workers"] == 8

    def test_validation_block_attached(self, config_loader):
        """Test the validation block is exposed under _validation."""
        config = config_loader.load_environment_config("development")
        assert config["_validation"]["required_environment_variables"] == ["FLEETGEO_TEST_TOKEN"]

    def test_load_environment_config_missing_file(self, temp_base_dir):
        """Test error when environment configuration file is missing."""
        loader = ConfigLoader(base_dir=str(temp_base_dir))

        with pytest.raises(FleetGeoConfigurationError, match="Environment configuration file not found"):
            loader.load_environment_config("development")

    def test_load_environment_config_invalid_json(self, temp_base_dir):
        """Test error when configuration file contains invalid JSON."""
        (temp_base_dir / "config" / "environment_config.json").write_text("{ invalid json }")
        loader = ConfigLoader(base_dir=str(temp_base_dir))

        with pytest.raises(FleetGeoConfigurationError, match="Invalid JSON"):
            loader.load_environment_config("development")

    def test_unknown_environment(self, config_loader):
        """Test error when requesting an environment that is not defined."""
        with pytest.raises(FleetGeoValidationError, match="Environment 'staging' not found"):
            config_loader.load_environment_config("staging")

    def test_missing_environments_key(self, temp_base_dir):
        """Test error when the environments key is absent."""
        (temp_base_dir / "config" / "environment_config.json").write_text(json.dumps({"shared": {}}))
        loader = ConfigLoader(base_dir=str(temp_base_dir))

        with pytest.raises(FleetGeoValidationError, match="Missing 'environments' key"):
            loader.load_environment_config("development")

    def test_missing_required_section(self, temp_base_dir, valid_environment_config):
        """Test error when a required section is missing from environment and shared."""
        del valid_environment_config["environments"]["development"]["logging"]
        (temp_base_dir / "config" / "environment_config.json").write_text(
            json.dumps(valid_environment_config)
        )
        loader = ConfigLoader(base_dir=str(temp_base_dir))

        with pytest.raises(FleetGeoValidationError, match="Missing required key 'logging'"):
            loader.load_environment_config("development")

    def test_missing_mongodb_settings(self, temp_base_dir, valid_environment_config):
        """Test error when the merged mongodb block lacks a connection setting."""
        del valid_environment_config["environments"]["development"]["mongodb"]["database"]
        (temp_base_dir / "config" / "environment_config.json").write_text(
            json.dumps(valid_environment_config)
        )
        loader = ConfigLoader(base_dir=str(temp_base_dir))

        with pytest.raises(FleetGeoValidationError, match="database"):
            loader.load_environment_config("development")

    def test_environment_config_is_cached(self, config_loader, temp_base_dir):
        """Test repeated loads do not re-read the file until the cache is cleared."""
        first = config_loader.load_environment_config("development")
        (temp_base_dir / "config" / "environment_config.json").write_text("{ broken")

        assert config_loader.load_environment_config("development") is first

        config_loader.clear_cache()
        with pytest.raises(FleetGeoConfigurationError):
            config_loader.load_environment_config("development")

    def test_get_config_resolves_module_file(self, config_loader, temp_base_dir):
        """Test dotted names resolve to <package>/<module>/config/<name>.json."""
        module_config_dir = temp_base_dir / "modules" / "city_enrichment" / "config"
        module_config_dir.mkdir(parents=True)
        (module_config_dir / "enrichment_config.json").write_text(
            json.dumps({"records": {"point_path": "Data.Position.Point"}})
        )

        config = config_loader.get_config("modules.city_enrichment.enrichment_config")
        assert config["records"]["point_path"] == "Data.Position.Point"

    def test_get_config_missing_file(self, config_loader):
        """Test error when a module configuration file does not exist."""
        with pytest.raises(FleetGeoConfigurationError, match="Module configuration file not found"):
            config_loader.get_config("modules.missing.some_config")

    def test_get_config_invalid_name(self, config_loader):
        """Test error for a dotted name without a package part."""
        with pytest.raises(FleetGeoConfigurationError, match="Invalid configuration name"):
            config_loader.get_config("enrichment_config")

    def test_get_config_invalid_json(self, config_loader, temp_base_dir):
        """Test error when a module configuration file contains invalid JSON."""
        module_config_dir = temp_base_dir / "modules" / "broken" / "config"
        module_config_dir.mkdir(parents=True)
        (module_config_dir / "broken_config.json").write_text("not json")

        with pytest.raises(FleetGeoConfigurationError, match="Invalid JSON in module configuration"):
            config_loader.get_config("modules.broken.broken_config")

    def test_get_mongodb_settings_from_file(self, config_loader, monkeypatch):
        """Test MongoDB settings come from the merged environment block."""
        monkeypatch.delenv("MONGODB_URI", raising=False)

        settings = config_loader.get_mongodb_settings("development")

        assert settings["uri"] == "mongodb://localhost:27017"
        assert settings["database"] == "fleet_dev"
        assert settings["collection"] == "tracking_records"

    def test_get_mongodb_settings_env_override(self, config_loader, monkeypatch):
        """Test the MONGODB_URI environment variable overrides the configured URI."""
        monkeypatch.setenv("MONGODB_URI", "mongodb://override:27017")

        settings = config_loader.get_mongodb_settings("development")

        assert settings["uri"] == "mongodb://override:27017"
        # The cached environment config itself is untouched
        assert config_loader.load_environment_config("development")["mongodb"]["uri"] == "mongodb://localhost:27017"

    @patch.dict('os.environ', {"FLEETGEO_TEST_TOKEN": "secret"})
    def test_validate_environment_variables_success(self, config_loader):
        """Test successful validation of required environment variables."""
        config_loader.validate_environment_variables("development")

    @patch.dict('os.environ', {}, clear=True)
    def test_validate_environment_variables_missing(self, config_loader):
        """Test error when required environment variables are missing."""
        with pytest.raises(FleetGeoValidationError, match="FLEETGEO_TEST_TOKEN"):
            config_loader.validate_environment_variables("development")
