"""Pydantic models for EspressoBox configuration.

These models define the structure of config.toml.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

GRAMS_PER_OUNCE = 28.349523125
ML_PER_FLUID_OUNCE = 29.5735295625


class DatabaseConfig(BaseModel):
    """MongoDB database configuration."""

    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "espressobox"
    # Connection pool settings
    min_pool_size: int = 1
    max_pool_size: int = 10


class StorageConfig(BaseModel):
    """File storage configuration."""

    data_dir: Path = Field(default_factory=lambda: Path("data"))
    max_upload_mb: int = 10

    @property
    def images_dir(self) -> Path:
        """Get the images directory path."""
        return self.data_dir / "images"

    @property
    def export_dir(self) -> Path:
        """Get the directory export files are written to."""
        return self.data_dir / "exports"

    @property
    def max_upload_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_mb * 1024 * 1024


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class BrewPreferences(BaseModel):
    """User brewing preferences.

    Passed explicitly into the recipe calculator and display helpers
    instead of being read from a global.
    """

    default_dose_in: float = 18.0
    default_ratio: float = 2.0
    default_water_temp: float = 93.0
    default_pressure: float = 9.0
    default_grind_setting: str = ""
    default_brew_method: str = "espresso"

    weight_unit: Literal["grams", "ounces"] = "grams"
    temperature_unit: Literal["celsius", "fahrenheit"] = "celsius"
    volume_unit: Literal["ml", "oz"] = "ml"

    def format_weight(self, grams: float) -> str:
        if self.weight_unit == "ounces":
            return f"{grams / GRAMS_PER_OUNCE:.2f} oz"
        return f"{grams:.1f} g"

    def format_temperature(self, celsius: float) -> str:
        if self.temperature_unit == "fahrenheit":
            return f"{celsius * 9 / 5 + 32:.1f}°F"
        return f"{celsius:.1f}°C"

    def format_volume(self, ml: float) -> str:
        if self.volume_unit == "oz":
            return f"{ml / ML_PER_FLUID_OUNCE:.1f} oz"
        return f"{ml:.0f} ml"


class MetricsConfig(BaseModel):
    """Thresholds used by the metrics engine.

    Freshness breakpoints are inclusive upper bounds in days for
    Very Fresh, Fresh, Good and Aging; anything older is Stale.
    """

    freshness_breakpoints: tuple[int, int, int, int] = (7, 14, 21, 30)
    low_stock_grams: float = 50.0
    ratio_min: float = 1.5
    ratio_max: float = 3.0
    brew_time_min: float = 20.0
    brew_time_max: float = 35.0
    balance_tolerance: int = 1

    @property
    def stale_after_days(self) -> int:
        return self.freshness_breakpoints[-1]


class TimerConfig(BaseModel):
    """Brew timer configuration."""

    tick_interval: float = Field(default=0.1, gt=0)


class EspressoboxConfig(BaseModel):
    """Main EspressoBox configuration loaded from config.toml."""

    app_name: str = "EspressoBox"
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    preferences: BrewPreferences = Field(default_factory=BrewPreferences)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    timer: TimerConfig = Field(default_factory=TimerConfig)
