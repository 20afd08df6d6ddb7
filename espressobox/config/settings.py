"""Process-wide settings for the edges of EspressoBox.

The CLI, database setup and file storage read from ``settings``. The metrics
engine and recipe calculator never do; the CLI passes ``settings.preferences``
and ``settings.metrics`` to them as arguments.
"""

import logging
from pathlib import Path

from espressobox.config.loader import load_config
from espressobox.config.schema import (
    BrewPreferences,
    EspressoboxConfig,
    MetricsConfig,
    TimerConfig,
)

logger = logging.getLogger(__name__)


class Settings:
    """Read-only view over an ``EspressoboxConfig``.

    Nested sections are reachable through ``config``; the values used across
    the app are also exposed as flat properties.
    """

    def __init__(self, config: EspressoboxConfig | None = None):
        self._config = config or load_config()

    @property
    def config(self) -> EspressoboxConfig:
        return self._config

    @property
    def app_name(self) -> str:
        return self._config.app_name

    # MongoDB
    @property
    def mongodb_url(self) -> str:
        return self._config.database.mongodb_url

    @property
    def mongodb_database(self) -> str:
        return self._config.database.mongodb_database

    @property
    def min_pool_size(self) -> int:
        return self._config.database.min_pool_size

    @property
    def max_pool_size(self) -> int:
        return self._config.database.max_pool_size

    # Files
    @property
    def data_dir(self) -> Path:
        return self._config.storage.data_dir

    @property
    def image_storage_path(self) -> Path:
        return self._config.storage.images_dir

    @property
    def export_path(self) -> Path:
        return self._config.storage.export_dir

    @property
    def max_upload_size_bytes(self) -> int:
        return self._config.storage.max_upload_bytes

    # Logging
    @property
    def log_level(self) -> str:
        return self._config.logging.level

    @property
    def log_format(self) -> str:
        return self._config.logging.format

    # Brewing sections, handed to the engine as arguments
    @property
    def preferences(self) -> BrewPreferences:
        return self._config.preferences

    @property
    def metrics(self) -> MetricsConfig:
        return self._config.metrics

    @property
    def timer(self) -> TimerConfig:
        return self._config.timer

    def __repr__(self) -> str:
        return f"<Settings(app_name={self.app_name}, database={self.mongodb_database}, data_dir={self.data_dir})>"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Load settings on first use and return the cached instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
        logger.debug("Loaded settings %r", _settings)
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access reloads them."""
    global _settings
    _settings = None


class _SettingsProxy:
    """Module-level stand-in that resolves to ``get_settings()`` on each access."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)

    def __repr__(self) -> str:
        return repr(get_settings())


settings = _SettingsProxy()
