"""Configuration loader for the DoH relay.

Builds a DohRelayConfig from three layers, later layers winning:
built-in defaults, an optional YAML or JSON file, and DOH_RELAY_*
environment variables. The result is immutable for the life of the process.
"""

import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .schema import (
    DohRelayConfig,
    LoggingConfig,
    SecurityConfig,
    ServerConfig,
    UpstreamConfig,
    WebConfig,
    create_default_config,
)

ENV_PREFIX = "DOH_RELAY_"

SECTION_TYPES = {
    "server": ServerConfig,
    "upstream": UpstreamConfig,
    "security": SecurityConfig,
    "logging": LoggingConfig,
    "web": WebConfig,
}


class ConfigLoader:
    """Configuration loader merging defaults, file and environment."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """Initialize configuration loader.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            environ: Environment mapping, defaults to ``os.environ``
        """
        self.config_file = config_file
        self.environ = os.environ if environ is None else environ
        self._config: Optional[DohRelayConfig] = None

    def load_config(self) -> DohRelayConfig:
        """Load configuration from file and environment variables.

        Returns:
            Loaded and validated relay configuration

        Raises:
            FileNotFoundError: If config file is specified but not found
            ValueError: If configuration is invalid
            yaml.YAMLError: If YAML parsing fails
            json.JSONDecodeError: If JSON parsing fails
        """
        layered = self._config_to_dict(create_default_config())

        if self.config_file:
            layered = self._merge_configs(layered, self._load_from_file(self.config_file))

        layered = self._apply_env_overrides(layered)

        self._config = self._dict_to_config(layered)
        return self._config

    def get_config(self) -> Optional[DohRelayConfig]:
        """Get current configuration."""
        return self._config

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Parse a YAML or JSON configuration file.

        Files without a known suffix are tried as YAML, then as JSON.

        Raises:
            FileNotFoundError: If file is not found
            ValueError: If the content is neither YAML nor JSON
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        content = path.read_text(encoding="utf-8")
        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            parsed = yaml.safe_load(content)
        elif suffix == ".json":
            parsed = json.loads(content)
        else:
            try:
                parsed = yaml.safe_load(content)
            except yaml.YAMLError:
                try:
                    parsed = json.loads(content)
                except json.JSONDecodeError:
                    raise ValueError(f"Unsupported file format: {file_path}")

        # An empty file parses to None
        return parsed if isinstance(parsed, dict) else {}

    def _config_to_dict(self, config: DohRelayConfig) -> Dict[str, Any]:
        """Flatten the config into one plain dict per section."""
        return {name: asdict(getattr(config, name)) for name in SECTION_TYPES}

    def _dict_to_config(self, layered: Dict[str, Any]) -> DohRelayConfig:
        """Build the validated config from section dicts.

        Raises:
            ValueError: If a section has unknown keys or invalid values
        """
        sections = {}
        for name, section_type in SECTION_TYPES.items():
            values = layered.get(name) or {}
            if not isinstance(values, dict):
                raise ValueError(f"Configuration section '{name}' must be a mapping")
            try:
                sections[name] = section_type(**values)
            except TypeError as e:
                raise ValueError(f"Invalid '{name}' configuration: {e}")

        return DohRelayConfig(**sections)

    def _merge_configs(
        self, base: Dict[str, Any], override: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Recursively overlay ``override`` on ``base``."""
        merged = dict(base)

        for key, value in override.items():
            if isinstance(merged.get(key), dict) and isinstance(value, dict):
                merged[key] = self._merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged

    def _apply_env_overrides(self, layered: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration.

        Environment variables use the format DOH_RELAY_<SECTION>_<KEY>
        For example: DOH_RELAY_UPSTREAM_TIMEOUT_MS=800
        """
        for env_key, env_value in self.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            section, _, key = env_key[len(ENV_PREFIX) :].lower().partition("_")
            if not key or not isinstance(layered.get(section), dict):
                continue

            current = layered[section].get(key)
            layered[section][key] = self._convert_env_value(env_value, current)

        return layered

    def _convert_env_value(self, value: str, current: Any) -> Any:
        """Convert an environment string to the type of the value it replaces.

        Values that do not convert are passed through as strings and left
        for section validation to reject.
        """
        if isinstance(current, bool):
            lowered = value.lower()
            if lowered in ("true", "yes", "1", "on"):
                return True
            if lowered in ("false", "no", "0", "off"):
                return False
            return value

        if isinstance(current, int):
            try:
                return int(value)
            except ValueError:
                return value

        if isinstance(current, (list, tuple)):
            return [item.strip() for item in value.split(",") if item.strip()]

        return value


def load_config_from_file(config_file: Optional[str] = None) -> DohRelayConfig:
    """Convenience function to load configuration."""
    return ConfigLoader(config_file).load_config()
