"""Configuration loader for raw machine configurations.

This module provides functionality to load raw configurations from:
- Files (JSON, YAML)
- Dictionaries
- Environment variables referenced inside string values

The loader returns raw mappings; compilation is done by
:class:`~declarative_fsm.config.compiler.MachineConfiguration`.
"""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from declarative_fsm.exceptions import ConfigurationError
from declarative_fsm.utils.merge import deep_merge

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Load and pre-process raw machine configurations."""

    def __init__(self, env_prefix: str = "FSM_"):
        """Initialize the ConfigLoader.

        Args:
            env_prefix: Prefix tried as a fallback when resolving ``${VAR}``.
        """
        self._env_prefix = env_prefix

    def load_from_file(
        self,
        file_path: Union[str, Path],
        resolve_env: bool = True,
    ) -> Dict[str, Any]:
        """Load a raw configuration from a file.

        Args:
            file_path: Path to configuration file (JSON or YAML).
            resolve_env: Whether to resolve environment variables.

        Returns:
            Raw configuration dictionary.

        Raises:
            FileNotFoundError: If file doesn't exist.
            ConfigurationError: If the format is unsupported or the document
                is not a mapping.
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        raw_config = self._load_file(file_path)
        if raw_config is None:
            raw_config = {}
        if not isinstance(raw_config, Mapping):
            raise ConfigurationError(
                f"Configuration in {file_path} must be a mapping of states",
                context={"path": str(file_path)},
            )

        logger.debug(f"Loaded configuration from {file_path}")
        return self.load_from_dict(raw_config, resolve_env=resolve_env)

    def load_from_dict(
        self,
        config_dict: Mapping[str, Any],
        resolve_env: bool = True,
    ) -> Dict[str, Any]:
        """Load a raw configuration from a dictionary.

        Args:
            config_dict: Configuration dictionary.
            resolve_env: Whether to resolve environment variables.

        Returns:
            Processed configuration dictionary.
        """
        processed_config = dict(config_dict)

        if resolve_env:
            processed_config = self._resolve_environment_vars(processed_config)

        return processed_config

    def merge(self, *configs: Mapping[str, Any]) -> Dict[str, Any]:
        """Merge raw configurations; later ones override earlier ones."""
        merged: Dict[str, Any] = {}
        for config in configs:
            merged = deep_merge(merged, config)
        return merged

    def _load_file(self, file_path: Path) -> Any:
        suffix = file_path.suffix.lower()

        with open(file_path) as f:
            if suffix == ".json":
                return json.load(f)
            elif suffix in [".yaml", ".yml"]:
                return yaml.safe_load(f)
            else:
                raise ConfigurationError(
                    f"Unsupported file format: {suffix}",
                    context={"path": str(file_path)},
                )

    def _resolve_environment_vars(self, config: Any) -> Any:
        """Resolve environment variables in configuration.

        Supports:
        - ${VAR_NAME} - Required variable
        - ${VAR_NAME:-default} - Variable with default value
        - ${VAR_NAME:?error message} - Required with custom error

        Args:
            config: Configuration to process.

        Returns:
            Configuration with resolved environment variables.
        """
        if isinstance(config, str):
            if config.startswith("${") and config.endswith("}"):
                var_expr = config[2:-1]

                if ":-" in var_expr:
                    var_name, default_value = var_expr.split(":-", 1)
                    return self._lookup(var_name, default_value)

                elif ":?" in var_expr:
                    var_name, error_msg = var_expr.split(":?", 1)
                    value = self._lookup(var_name)
                    if value is None:
                        raise ConfigurationError(
                            f"Required environment variable: {error_msg}",
                            context={"variable": var_name},
                        )
                    return value

                else:
                    value = self._lookup(var_expr)
                    if value is None:
                        raise ConfigurationError(
                            f"Environment variable not found: {var_expr}",
                            context={"variable": var_expr},
                        )
                    return value

            return config

        elif isinstance(config, Mapping):
            return {key: self._resolve_environment_vars(value) for key, value in config.items()}

        elif isinstance(config, list):
            return [self._resolve_environment_vars(item) for item in config]

        else:
            return config

    def _lookup(self, var_name: str, default: str | None = None) -> str | None:
        if var_name in os.environ:
            return os.environ[var_name]
        prefixed_var = f"{self._env_prefix}{var_name}"
        if prefixed_var in os.environ:
            return os.environ[prefixed_var]
        return default
