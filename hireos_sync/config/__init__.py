"""
hireos_sync.config - Configuration management module

Contains configuration loading, validation, and typed GoHighLevel settings.
"""

from hireos_sync.config.loader import ConfigError, ConfigLoader
from hireos_sync.config.settings import ConfigurationError, GHLSettings

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "ConfigurationError",
    "GHLSettings",
]
