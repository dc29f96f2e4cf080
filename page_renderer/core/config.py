"""
Configuration management for the Page Renderer service.

This module provides a singleton `ConfigurationManager` class to load and access
configuration settings from YAML files. It supports environment-specific
configurations (e.g., development, production, test) and allows easy access to
nested configuration values.

Key Features:
- Loads settings from YAML files based on APP_ENV environment variable.
- Defaults to 'development' environment if APP_ENV is not set.
- Applies environment-variable overrides (RENDER_CACHE_TTL_MS, PORT, ...) on top
  of the YAML values after every load.
- Provides a global `config_manager` instance for easy access.
- Supports dot notation for accessing nested keys (e.g., "cache.ttl_ms").
- Custom exceptions for configuration-related errors.
"""
import logging
import os
import yaml
from typing import Any, Callable, Dict, List, Optional, Tuple

# CONFIG_DIR: Path to the directory containing configuration YAML files.
# Config files (development.yaml, production.yaml, test.yaml) live in the
# 'config' directory of the package (one level up from 'core').
CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "config")

# DEFAULT_ENV: The default environment to use if APP_ENV is not set.
DEFAULT_ENV = "development"

# ENV_OVERRIDES: (environment variable, dotted config key, converter).
# Applied after the YAML file is loaded, so the process environment always wins.
ENV_OVERRIDES: List[Tuple[str, str, Callable[[str], Any]]] = [
    ("RENDER_CACHE_CAPACITY", "cache.capacity", int),
    ("RENDER_CACHE_TTL_MS", "cache.ttl_ms", int),
    ("RENDER_USER_AGENT", "identity.user_agent", str),
    ("RENDER_VIEWPORT_WIDTH", "identity.viewport.width", int),
    ("RENDER_VIEWPORT_HEIGHT", "identity.viewport.height", int),
    ("RENDER_LOCALE", "identity.locale", str),
    ("RENDER_TIMEZONE", "identity.timezone", str),
    ("RENDER_ACCEPT_LANGUAGE", "identity.accept_language", str),
    ("RENDER_SEC_CH_UA", "identity.sec_ch_ua", str),
    ("RENDER_SEC_CH_UA_PLATFORM", "identity.sec_ch_ua_platform", str),
    ("PORT", "server.port", int),
    ("RENDER_NAVIGATION_FLOOR_MS", "renderer.navigation_timeout_floor_ms", int),
]

# The logger module depends on this one, so a plain stdlib logger is used here.
_log = logging.getLogger(__name__)


class ConfigError(Exception):
    """Base class for all configuration-related errors."""
    pass

class ConfigFileNotFoundError(ConfigError):
    """Raised when a specific configuration file (e.g., development.yaml) cannot be found."""
    pass

class InvalidYamlError(ConfigError):
    """Raised when a configuration file contains invalid YAML syntax or is not a dictionary."""
    pass


def _set_nested(target: Dict[str, Any], dotted_key: str, value: Any) -> None:
    """Sets `value` at `dotted_key` inside `target`, creating intermediate dicts."""
    parts = dotted_key.split(".")
    node = target
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


class ConfigurationManager:
    """
    Manages loading and accessing configuration settings from YAML files.

    This class is implemented as a singleton. The first time an instance is created,
    it loads the configuration. Subsequent instantiations return the existing instance.
    """
    _instance: Optional['ConfigurationManager'] = None
    _config: Dict[str, Any] = {}
    _current_env: str = ""
    CONFIG_DIR: str = CONFIG_DIR

    def __new__(cls) -> 'ConfigurationManager':
        """
        Ensures that only one instance of ConfigurationManager is created (Singleton pattern).
        Loads configuration upon first instantiation.
        """
        if cls._instance is None:
            cls._instance = super(ConfigurationManager, cls).__new__(cls)
            cls._instance.load_config()
        return cls._instance

    def load_config(self, env: Optional[str] = None) -> None:
        """
        Loads configuration from a YAML file corresponding to the specified environment,
        then applies environment-variable overrides.

        The environment is determined in the following order of precedence:
        1. The `env` parameter passed to this method.
        2. The `APP_ENV` environment variable.
        3. `DEFAULT_ENV` (if neither of the above is set).

        Args:
            env (Optional[str]): The specific environment name (e.g., "production") to load.
                                 If None, uses APP_ENV or DEFAULT_ENV.

        Raises:
            ConfigFileNotFoundError: If the YAML file for the target environment is not found.
            InvalidYamlError: If the YAML file is malformed or not a dictionary.
        """
        self._current_env = env or os.getenv("APP_ENV", DEFAULT_ENV)
        config_file_path = os.path.join(self.CONFIG_DIR, f"{self._current_env}.yaml")

        try:
            with open(config_file_path, "r") as f:
                self._config = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigFileNotFoundError(
                f"Configuration file not found for environment '{self._current_env}' at '{config_file_path}'. "
                f"Ensure '{self._current_env}.yaml' exists in the '{self.CONFIG_DIR}' directory."
            )
        except yaml.YAMLError as e:
            raise InvalidYamlError(
                f"Error parsing YAML in configuration file '{config_file_path}': {e}"
            )
        if not isinstance(self._config, dict):
            raise InvalidYamlError(
                f"Configuration file '{config_file_path}' does not contain a valid YAML dictionary."
            )

        self.apply_env_overrides()

    def apply_env_overrides(self, environ: Optional[Dict[str, str]] = None) -> None:
        """
        Copies recognised environment variables into the loaded configuration.

        Values that cannot be converted (e.g. a non-numeric RENDER_CACHE_CAPACITY)
        are skipped with a warning and the YAML value is kept.

        Args:
            environ (Optional[Dict[str, str]]): Mapping to read from. Defaults to `os.environ`.
        """
        source = os.environ if environ is None else environ
        for env_var, key, convert in ENV_OVERRIDES:
            raw = source.get(env_var)
            if raw is None or raw == "":
                continue
            try:
                value = convert(raw)
            except ValueError:
                _log.warning(f"Ignoring environment override {env_var}={raw!r}: not a valid {convert.__name__}.")
                continue
            _set_nested(self._config, key, value)

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """
        Retrieves a configuration value for the given key.

        Supports accessing nested values using dot notation (e.g., "identity.viewport.width").
        If the key is not found, returns the provided default value.

        Args:
            key (str): The configuration key to retrieve. Can use dot notation
                       for nested structures (e.g., "parent.child.key").
            default (Optional[Any]): The value to return if the key is not found.
                                     Defaults to None.

        Returns:
            Any: The configuration value if found, otherwise the default value.
        """
        keys = key.split(".")
        value = self._config
        try:
            for k_part in keys:
                if isinstance(value, dict):
                    value = value[k_part]
                else:
                    return default
            return value
        except (KeyError, TypeError):
            return default

    def reload_config(self, env: Optional[str] = None) -> None:
        """
        Reloads the configuration, potentially for a different environment.

        Args:
            env (Optional[str]): The environment to reload. If None, reloads the
                                 currently active environment.
        """
        old_env = self._current_env
        self.load_config(env or old_env)
        _log.info(f"Configuration reloaded. Previous environment '{old_env}', active environment '{self._current_env}'.")

    @property
    def current_environment(self) -> str:
        """
        Returns the name of the currently loaded configuration environment.

        Returns:
            str: The name of the current environment (e.g., "development", "production").
        """
        return self._current_env

# Global instance of ConfigurationManager to be used by other modules.
# This instance is created when the module is first imported, triggering the initial
# configuration load via __new__ and load_config().
config_manager = ConfigurationManager()

def get_config(key: str, default: Optional[Any] = None) -> Any:
    """
    A convenience function to access configuration values via the global `config_manager`.

    Args:
        key (str): The configuration key (dot notation for nested values).
        default (Optional[Any]): Default value if the key is not found.

    Returns:
        Any: The configuration value or the default.
    """
    return config_manager.get(key, default)
