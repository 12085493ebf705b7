"""
Configuration loading and saving utilities.

This module loads uploader configuration from YAML or JSON files and
applies environment variable overrides on top.
"""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import yaml

from ...core.domain.exceptions import ConfigError
from .models import UploaderConfig


class ConfigLoader:
    """Configuration loader supporting YAML, JSON and the environment."""

    def __init__(self, env_prefix: str = "CHUNKWISE_") -> None:
        self._env_prefix = env_prefix

    def load_config(self, config_file: Optional[str] = None) -> UploaderConfig:
        """
        Load configuration from file and environment variables.

        Args:
            config_file: Path to configuration file (optional)

        Returns:
            Loaded and validated configuration

        Raises:
            ConfigError: If the file is missing, malformed or holds invalid values
        """
        config_data: Dict[str, Any] = {}

        if config_file:
            config_data = self._load_from_file(config_file)

        env_overrides = self._load_from_environment()
        config_data = self._merge_configs(config_data, env_overrides)

        config = UploaderConfig.from_dict(config_data)
        config.config_file_path = config_file

        return config

    def save_config(self, config: UploaderConfig, file_path: str, format: str = "yaml") -> None:
        """
        Save configuration to file.

        Args:
            config: Configuration to save
            file_path: Output file path
            format: File format (yaml or json)
        """
        config_data = config.to_dict()

        if format.lower() == "yaml":
            self._save_yaml(config_data, file_path)
        elif format.lower() == "json":
            self._save_json(config_data, file_path)
        else:
            raise ConfigError(f"Unsupported format: {format}")

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        path = Path(file_path)

        if not path.exists():
            raise ConfigError(f"Configuration file not found: {file_path}")

        if path.suffix.lower() in ('.yaml', '.yml'):
            data = self._load_yaml(file_path)
        elif path.suffix.lower() == '.json':
            data = self._load_json(file_path)
        else:
            raise ConfigError(f"Unsupported configuration file format: {path.suffix}")

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration in {file_path} must be a mapping")
        return data

    def _load_yaml(self, file_path: str) -> Any:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {file_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Error reading {file_path}: {e}") from e

    def _load_json(self, file_path: str) -> Any:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {file_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Error reading {file_path}: {e}") from e

    def _save_yaml(self, data: Dict[str, Any], file_path: str) -> None:
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, indent=2, sort_keys=False)
        except OSError as e:
            raise ConfigError(f"Error writing YAML to {file_path}: {e}") from e

    def _save_json(self, data: Dict[str, Any], file_path: str) -> None:
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise ConfigError(f"Error writing JSON to {file_path}: {e}") from e

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration overrides from environment variables."""
        config: Dict[str, Any] = {}

        env_mappings: Dict[str, Tuple[str, Callable[[str], Any]]] = {
            f"{self._env_prefix}DEBUG": ("debug", self._parse_bool),
            f"{self._env_prefix}SERVER_URL": ("server.base_url", str),
            f"{self._env_prefix}SERVER_TIMEOUT": ("server.timeout", float),
            f"{self._env_prefix}CHUNK_SIZE": ("chunking.chunk_size", int),
            f"{self._env_prefix}MAX_CHUNK_COUNT": ("chunking.max_chunk_count", int),
            f"{self._env_prefix}CONCURRENCY": ("transfer.concurrency", int),
            f"{self._env_prefix}RETRY_BASE_DELAY": ("transfer.retry_base_delay", float),
            f"{self._env_prefix}MAX_ATTEMPTS": ("transfer.max_attempts", int),
            f"{self._env_prefix}LOG_LEVEL": ("logging.level", str),
            f"{self._env_prefix}LOG_DIR": ("logging.log_directory", str),
        }

        for env_var, (config_path, converter) in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    self._set_nested_value(config, config_path, converter(value))
                except (ValueError, TypeError) as e:
                    raise ConfigError(f"Invalid value for {env_var}: {value} ({e})") from e

        return config

    def _parse_bool(self, value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on', 'enabled')

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation."""
        keys = path.split('.')
        current = config

        for key in keys[:-1]:
            current = current.setdefault(key, {})

        current[keys[-1]] = value

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result
