"""
Configuration Management System

Centralized configuration loaded from the YAML and JSON files of the
config directory. Supports dot-notation access and reloading.

The config directory is taken from the FLEETCAST_CONFIG_DIR environment
variable, or backend/config by default. DATABASE_URL, when set,
overrides system.store.databaseUrl.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml


logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "FLEETCAST_CONFIG_DIR"
DEFAULT_CONFIG_DIR = Path(__file__).parent.parent / "config"


class ConfigManager:
    """
    Manage application configuration from YAML and JSON files

    Provides:
    - Load all config files on construction
    - Dot notation access: config.get('prediction.generation.vehicleLimit')
    - Runtime overrides with set()
    - Default values for missing keys

    Each file becomes a top-level section named after its stem
    (prediction.yaml -> 'prediction').
    """

    def __init__(self, config_dir: str = None, configs: Dict[str, Any] = None):
        """
        Initialize configuration manager

        Args:
            config_dir: Path to config directory (default: env or backend/config)
            configs: Preloaded sections; skips reading files when given
        """
        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            self.config_dir = Path(os.getenv(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR))

        self.configs: Dict[str, Any] = {}
        if configs is not None:
            self.configs.update(configs)
        else:
            self._load_all_configs()
        self._apply_env_overrides()

    @classmethod
    def from_dict(cls, configs: Dict[str, Any]) -> 'ConfigManager':
        """In-memory configuration (tests, embedding)"""
        return cls(configs=configs)

    def _load_all_configs(self):
        """Load all configuration files from config directory"""
        if not self.config_dir.exists():
            logger.warning("Config directory %s not found, using defaults", self.config_dir)
            return

        # Load YAML configs
        for yaml_file in sorted(self.config_dir.glob("*.yaml")):
            try:
                with open(yaml_file, 'r', encoding='utf-8') as f:
                    self.configs[yaml_file.stem] = yaml.safe_load(f) or {}
                logger.debug("Loaded config %s", yaml_file.name)
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Failed to load %s: %s", yaml_file.name, e)

        # Load JSON configs
        for json_file in sorted(self.config_dir.glob("*.json")):
            try:
                with open(json_file, 'r', encoding='utf-8') as f:
                    self.configs[json_file.stem] = json.load(f)
                logger.debug("Loaded config %s", json_file.name)
            except (OSError, ValueError) as e:
                logger.warning("Failed to load %s: %s", json_file.name, e)

    def _apply_env_overrides(self):
        database_url = os.getenv("DATABASE_URL")
        if database_url:
            self.set('system.store.databaseUrl', database_url)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot notation key

        Examples:
            config.get('simulation.interval')
            config.get('prediction.validation.batchLimit', 500)

        Args:
            key: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.configs
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def get_prediction_config(self) -> Dict[str, Any]:
        """Get prediction configuration section"""
        return self.configs.get('prediction', {})

    def get_simulation_config(self) -> Dict[str, Any]:
        """Get simulation configuration section"""
        return self.configs.get('simulation', {})

    def get_broadcast_config(self) -> Dict[str, Any]:
        """Get broadcast configuration section"""
        return self.configs.get('broadcast', {})

    def reload(self):
        """Reload all configuration files (runtime overrides are lost)"""
        logger.info("Reloading configuration from %s", self.config_dir)
        self.configs.clear()
        self._load_all_configs()
        self._apply_env_overrides()

    def set(self, key: str, value: Any):
        """
        Set a configuration value (runtime only, not persisted)

        Args:
            key: Dot-separated key path
            value: Value to set
        """
        keys = key.split('.')
        config = self.configs

        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
