# docbend/config.py
"""
Configuration management for target schemas.
Supports YAML configuration files holding named schemas and global settings.
"""

import os
import re
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List, Union

from .defaults import settings
from .errors import ConfigurationError
from .schema import TargetSchema

try:
    import yaml
except ImportError:
    raise ImportError("PyYAML is required. Install with: pip install PyYAML")

logger = logging.getLogger(__name__)

_env_pattern = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')


def _expand_env(value: Any) -> Any:
    """Expand ${VAR_NAME} references in string values, recursively."""
    if isinstance(value, str):
        def _lookup(match):
            name = match.group(1)
            if name not in os.environ:
                raise ConfigurationError(f"Environment variable '{name}' is not set")
            return os.environ[name]
        return _env_pattern.sub(_lookup, value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


class ConfigManager:
    """
    Manage docbend configuration from YAML files.

    Configuration File Structure
    ----------------------------
    ::

        # docbend.yml
        settings:
          extra_props_column: _extra_props
          logging:
            level: INFO

        schemas:
          air_nomads:
            target:
              table: public.air_nomads
              columns:
                - {name: id, source: _id, type: text}
                - {name: age, source: profile.age, type: integer}
              extraProps:
                type: jsonb
                omit: [_id, profile.age]
            keys:
              primaryKey: [id]

    Configuration Locations
    -----------------------
    ConfigManager searches for configuration files in this order:

    1. File specified in config_file parameter
    2. ``./docbend.yml`` (current directory)
    3. ``./docbend.yaml`` (current directory)
    4. ``~/.config/docbend.yml`` (user config directory)
    5. ``~/.config/docbend.yaml`` (user config directory)

    Notes
    -----
    * Each schema is validated when first requested; a broken schema raises
      ConfigurationError without affecting the others.
    * Schema table names default to the schema name.
    * Environment variables can be used with ${VAR_NAME} syntax
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """
        Initialize config manager and load configuration.

        Raises
        ------
        FileNotFoundError
            If no config file found in any search location
        ConfigurationError
            If config file is invalid or malformed
        """
        self.config_file = self._find_config_file(config_file)
        self.config = self._load_config()
        self._schemas: Dict[str, TargetSchema] = {}

        # Apply global settings
        self._apply_settings()

    def _find_config_file(self, config_file: Optional[Union[str, Path]]) -> Path:
        """Find the configuration file."""
        if config_file:
            path = Path(config_file)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {config_file}")
            return path

        candidates = [
            Path("docbend.yml"),
            Path("docbend.yaml"),
            Path.home() / ".config" / "docbend.yml",
            Path.home() / ".config" / "docbend.yaml"
        ]

        for candidate in candidates:
            if candidate.exists():
                return candidate

        raise FileNotFoundError(
            "No config file found. Looked in: " +
            ", ".join(str(c) for c in candidates)
        )

    def _load_config(self) -> Dict[str, Any]:
        """Load and validate configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config file {self.config_file}: {e}") from e

        if not isinstance(config, dict):
            raise ConfigurationError(f"Invalid config file {self.config_file}.")

        if 'schemas' in config:
            if not isinstance(config['schemas'], dict):
                raise ConfigurationError(f"Invalid config file {self.config_file}: 'schemas' must be a dictionary")
            for name, schema_def in config['schemas'].items():
                if not isinstance(schema_def, dict):
                    raise ConfigurationError(f"Invalid schema '{name}' in {self.config_file}: must be a dictionary")

        if 'settings' in config:
            if not isinstance(config['settings'], dict):
                raise ConfigurationError(f"Invalid config file {self.config_file}: 'settings' must be a dictionary")

        logger.info(f"Loaded config from {self.config_file}")
        return config

    def _apply_settings(self) -> None:
        """Apply global settings from config."""
        config_settings = _expand_env(dict(self.config.get('settings', {})))
        logging_settings = config_settings.pop('logging', None)
        settings.update(config_settings)
        if isinstance(logging_settings, dict):
            # merge so a partial logging section keeps the remaining defaults
            settings['logging'] = {**settings.get('logging', {}), **logging_settings}
        if 'integer_types' in config_settings:
            settings['integer_types'] = tuple(t.lower() for t in config_settings['integer_types'])

    def get_setting(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value from the config.

        Args:
            key: Setting key (supports dot notation like 'logging.level')
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        value = self.config.get('settings', {})
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return _expand_env(value)

    def list_schemas(self) -> List[str]:
        return list(self.config.get('schemas', {}).keys())

    def get_schema(self, name: str) -> TargetSchema:
        """
        Build (once) and return the named schema.

        Raises:
            ConfigurationError: If the schema is not defined or is invalid.
        """
        if name in self._schemas:
            return self._schemas[name]
        schemas = self.config.get('schemas', {})
        if name not in schemas:
            raise ConfigurationError(f"Schema '{name}' not found in {self.config_file}")
        try:
            schema_def = _expand_env(schemas[name])
            target = schema_def.get('target', schema_def)
            table = (target.get('table') if isinstance(target, dict) else None) or schema_def.get('table') or name
            schema = TargetSchema.from_config(schema_def, table=table)
        except ConfigurationError as e:
            raise ConfigurationError(f"Invalid schema '{name}' in {self.config_file}: {e}") from e
        self._schemas[name] = schema
        logger.debug(f"Loaded schema '{name}': {schema!r}")
        return schema


# Global config manager instance
_config_manager: Optional[ConfigManager] = None


def _get_manager(config_file: Optional[Union[str, Path]] = None) -> ConfigManager:
    global _config_manager

    # Use provided config file or global instance
    if config_file:
        return ConfigManager(config_file)
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def set_config_file(config_file: Union[str, Path]) -> None:
    """Set the configuration file to use globally."""
    global _config_manager
    _config_manager = ConfigManager(config_file)


def load_schema(name: str, config_file: Optional[Union[str, Path]] = None) -> TargetSchema:
    """
    Load a named schema from configuration.

    Example:
        schema = load_schema('air_nomads')
        schema = load_schema('air_nomads', 'etc/docbend.yml')
    """
    return _get_manager(config_file).get_schema(name)


def get_setting(key: str, default: Any = None, config_file: Optional[Union[str, Path]] = None) -> Any:
    """
    Get a setting value from configuration.

    Example:
        level = get_setting('logging.level', 'INFO')
    """
    return _get_manager(config_file).get_setting(key, default)
