from .config import get_config, config_manager, ConfigurationManager, ConfigError, ConfigFileNotFoundError, InvalidYamlError
from .exceptions import (
    PageRendererError,
    ConfigurationError,
    ComponentError,
    RendererError,
    BrowserShuttingDownError,
    CacheError,
    EnrichmentError,
    ExtractorError,
)
from .logger import setup_logging, get_logger

__all__ = [
    # Config
    "get_config",
    "config_manager",
    "ConfigurationManager",
    "ConfigError",
    "ConfigFileNotFoundError",
    "InvalidYamlError",
    # Logger
    "setup_logging",
    "get_logger",
    # Exceptions
    "PageRendererError",
    "ConfigurationError",
    "ComponentError",
    "RendererError",
    "BrowserShuttingDownError",
    "CacheError",
    "EnrichmentError",
    "ExtractorError",
]
