"""EspressoBox configuration module.

This module provides TOML-based configuration with environment variable overrides.

Configuration is loaded from the following locations (in order of priority):
1. Environment variables (highest priority)
2. ./config.toml (project root - for development)
3. ~/.config/espressobox/config.toml (user config)
4. /etc/espressobox/config.toml (system config)
"""

from espressobox.config.schema import (
    BrewPreferences,
    DatabaseConfig,
    EspressoboxConfig,
    LoggingConfig,
    MetricsConfig,
    StorageConfig,
    TimerConfig,
)
from espressobox.config.settings import get_settings, settings

__all__ = [
    "BrewPreferences",
    "DatabaseConfig",
    "EspressoboxConfig",
    "LoggingConfig",
    "MetricsConfig",
    "StorageConfig",
    "TimerConfig",
    "get_settings",
    "settings",
]
