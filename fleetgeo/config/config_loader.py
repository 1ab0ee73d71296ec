"""
Configuration loader for the FleetGeo enrichment framework.

This module provides the ConfigLoader class that handles loading and validating
JSON configuration files for multi-environment deployments, plus per-module
configuration files stored next to each processing module.
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, Optional
from functools import lru_cache

from ..exceptions import FleetGeoConfigurationError, FleetGeoValidationError
from ..utils import get_logger

MONGODB_URI_ENV_VAR = "MONGODB_URI"

REQUIRED_ENVIRONMENT_KEYS = ("mongodb", "logging", "processing")
REQUIRED_MONGODB_KEYS = ("uri", "database", "collection")


class ConfigLoader:
    """
    Configuration loader and validator for FleetGeo.

    Loads environment-specific configuration from ``environment_config.json``,
    merges the ``shared`` block into each environment, and resolves module
    configuration files referenced by dotted names.
    """

    def __init__(self, config_dir: Optional[str] = None, base_dir: Optional[str] = None):
        """
        Initialize the configuration loader.

        Args:
            config_dir: Directory containing environment configuration (defaults to 'config/')
            base_dir: Project root used to resolve module configuration files
        """
        self.logger = get_logger(__name__)
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self.config_dir = Path(config_dir) if config_dir else self.base_dir / "config"
        self._config_cache: Dict[str, Dict[str, Any]] = {}

    @lru_cache(maxsize=2)
    def load_environment_config(self, environment: str) -> Dict[str, Any]:
        """
        Load configuration for a specific environment.

        Args:
            environment: Environment name (development/production)

        Returns:
            Dictionary containing environment-specific configuration merged with shared config

        Raises:
            FleetGeoConfigurationError: If configuration cannot be loaded or validated
        """
        env_config_path = self.config_dir / "environment_config.json"

        if not env_config_path.exists():
            raise FleetGeoConfigurationError(
                f"Environment configuration file not found: {env_config_path}"
            )

        try:
            with open(env_config_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise FleetGeoConfigurationError(
                f"Invalid JSON in environment configuration: {str(e)}"
            )

        self._validate_environment_config(config_data, environment)

        env_config = self._merge_shared(
            config_data.get("shared", {}),
            config_data["environments"][environment],
        )
        env_config["_validation"] = config_data.get("validation", {})

        self.logger.info(f"Loaded configuration for environment: {environment}")
        return env_config

    def get_config(self, dotted_name: str) -> Dict[str, Any]:
        """
        Load a module configuration file by dotted name.

        ``modules.city_enrichment.enrichment_config`` resolves to
        ``<base_dir>/modules/city_enrichment/config/enrichment_config.json``.

        Args:
            dotted_name: Dotted module path ending with the config file stem

        Returns:
            Parsed configuration dictionary

        Raises:
            FleetGeoConfigurationError: If the file is missing or not valid JSON
        """
        if dotted_name in self._config_cache:
            return self._config_cache[dotted_name]

        parts = dotted_name.split(".")
        if len(parts) < 2:
            raise FleetGeoConfigurationError(
                f"Invalid configuration name '{dotted_name}'",
                {"expected": "package.module.config_name"},
            )

        config_path = self.base_dir.joinpath(*parts[:-1], "config", f"{parts[-1]}.json")
        if not config_path.exists():
            raise FleetGeoConfigurationError(
                f"Module configuration file not found: {config_path}"
            )

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise FleetGeoConfigurationError(
                f"Invalid JSON in module configuration {config_path}: {str(e)}"
            )

        self._config_cache[dotted_name] = config_data
        self.logger.debug(f"Loaded module configuration from {config_path}")
        return config_data

    def get_mongodb_settings(self, environment: str) -> Dict[str, Any]:
        """
        Get MongoDB connection settings for an environment.

        The ``MONGODB_URI`` environment variable overrides the configured URI.

        Args:
            environment: Environment name

        Returns:
            Dictionary with uri, database, collection and optional timeouts
        """
        settings = dict(self.load_environment_config(environment)["mongodb"])
        env_uri = os.getenv(MONGODB_URI_ENV_VAR)
        if env_uri:
            settings["uri"] = env_uri
        return settings

    def validate_environment_variables(self, environment: str) -> None:
        """
        Validate that required environment variables are set.

        Args:
            environment: Environment name to validate

        Raises:
            FleetGeoValidationError: If required environment variables are missing
        """
        env_config = self.load_environment_config(environment)
        required_vars = env_config.get("_validation", {}).get("required_environment_variables", [])

        missing_vars = [var for var in required_vars if not os.getenv(var)]

        if missing_vars:
            raise FleetGeoValidationError(
                f"Missing required environment variables: {', '.join(missing_vars)}"
            )

        self.logger.info(f"Environment variables validated for: {environment}")

    @staticmethod
    def _merge_shared(shared: Dict[str, Any], env_config: Dict[str, Any]) -> Dict[str, Any]:
        """Merge shared sections into an environment; environment values win."""
        merged = {}
        for key, value in shared.items():
            merged[key] = dict(value) if isinstance(value, dict) else value
        for key, value in env_config.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key].update(value)
            else:
                merged[key] = dict(value) if isinstance(value, dict) else value
        return merged

    def _validate_environment_config(self, config_data: Dict[str, Any], environment: str) -> None:
        """
        Validate environment configuration structure.

        Args:
            config_data: Configuration data to validate
            environment: Environment name to validate

        Raises:
            FleetGeoValidationError: If configuration is invalid
        """
        if "environments" not in config_data:
            raise FleetGeoValidationError("Missing 'environments' key in configuration")

        if environment not in config_data["environments"]:
            available_envs = list(config_data["environments"].keys())
            raise FleetGeoValidationError(
                f"Environment '{environment}' not found. Available: {available_envs}"
            )

        shared = config_data.get("shared", {})
        env_config = config_data["environments"][environment]

        for key in REQUIRED_ENVIRONMENT_KEYS:
            if key not in env_config and key not in shared:
                raise FleetGeoValidationError(
                    f"Missing required key '{key}' in {environment} configuration"
                )

        mongodb = dict(shared.get("mongodb", {}))
        mongodb.update(env_config.get("mongodb", {}))
        missing = [key for key in REQUIRED_MONGODB_KEYS if key not in mongodb]
        if missing:
            raise FleetGeoValidationError(
                f"Missing MongoDB settings in {environment} configuration (including shared): {missing}"
            )

    def clear_cache(self) -> None:
        """Clear the configuration cache."""
        self._config_cache.clear()
        self.load_environment_config.cache_clear()
        self.logger.info("Configuration cache cleared")
