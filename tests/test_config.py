"""Tests for the EspressoBox configuration system."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from espressobox.config.loader import (
    apply_env_overrides,
    env_mappings,
    find_config_file,
    get_config_search_paths,
    load_config,
    load_toml_file,
)
from espressobox.config.schema import (
    BrewPreferences,
    DatabaseConfig,
    EspressoboxConfig,
    MetricsConfig,
    StorageConfig,
    TimerConfig,
)
from espressobox.config.settings import Settings, get_settings, reset_settings


class TestSchemaDefaults:
    """Test default values in schema models."""

    def test_database_config_defaults(self):
        config = DatabaseConfig()
        assert config.mongodb_url == "mongodb://localhost:27017"
        assert config.mongodb_database == "espressobox"

    def test_storage_config_defaults(self):
        """Test StorageConfig has correct defaults and derived paths."""
        config = StorageConfig()
        assert config.data_dir == Path("data")
        assert config.images_dir == Path("data/images")
        assert config.export_dir == Path("data/exports")
        assert config.max_upload_bytes == 10 * 1024 * 1024

    def test_brew_preferences_defaults(self):
        prefs = BrewPreferences()
        assert prefs.default_dose_in == 18.0
        assert prefs.default_ratio == 2.0
        assert prefs.default_water_temp == 93.0
        assert prefs.default_pressure == 9.0
        assert prefs.default_brew_method == "espresso"

    def test_metrics_config_defaults(self):
        config = MetricsConfig()
        assert config.freshness_breakpoints == (7, 14, 21, 30)
        assert config.stale_after_days == 30
        assert config.low_stock_grams == 50.0
        assert (config.ratio_min, config.ratio_max) == (1.5, 3.0)
        assert (config.brew_time_min, config.brew_time_max) == (20.0, 35.0)

    def test_timer_interval_must_be_positive(self):
        assert TimerConfig().tick_interval == 0.1
        with pytest.raises(ValidationError):
            TimerConfig(tick_interval=0)


class TestUnitFormatting:
    """Test unit conversions on BrewPreferences."""

    def test_weight_in_grams_and_ounces(self):
        assert BrewPreferences().format_weight(18) == "18.0 g"
        assert BrewPreferences(weight_unit="ounces").format_weight(28.349523125) == "1.00 oz"

    def test_temperature_in_fahrenheit(self):
        assert BrewPreferences().format_temperature(93) == "93.0°C"
        assert BrewPreferences(temperature_unit="fahrenheit").format_temperature(100) == "212.0°F"

    def test_volume_in_ounces(self):
        assert BrewPreferences().format_volume(250) == "250 ml"
        assert BrewPreferences(volume_unit="oz").format_volume(29.5735295625) == "1.0 oz"


class TestConfigSearchPaths:
    def test_config_search_paths_order(self):
        """Project config wins over user config, which wins over system config."""
        paths = get_config_search_paths()
        assert len(paths) == 3
        assert paths[0] == Path.cwd() / "config.toml"
        assert paths[1] == Path.home() / ".config" / "espressobox" / "config.toml"
        assert paths[2] == Path("/etc/espressobox/config.toml")


class TestTomlLoading:
    """Test TOML file loading."""

    def test_load_toml_file(self, tmp_path):
        config_file = tmp_path / "config.toml"
        config_file.write_text('app_name = "TestBox"\n\n[metrics]\nlow_stock_grams = 80.0\n')

        result = load_toml_file(config_file)
        assert result["app_name"] == "TestBox"
        assert result["metrics"]["low_stock_grams"] == 80.0

    def test_load_config_from_file(self, tmp_path):
        """Test loading full config from a TOML file; unset values keep defaults."""
        toml_content = """
app_name = "HomeBar"

[preferences]
default_dose_in = 20.0
default_ratio = 2.5
temperature_unit = "fahrenheit"

[metrics]
freshness_breakpoints = [5, 10, 20, 40]
"""
        config_file = tmp_path / "config.toml"
        config_file.write_text(toml_content)

        config = load_config(config_file)
        assert config.app_name == "HomeBar"
        assert config.preferences.default_dose_in == 20.0
        assert config.preferences.default_ratio == 2.5
        assert config.preferences.temperature_unit == "fahrenheit"
        assert config.metrics.freshness_breakpoints == (5, 10, 20, 40)
        assert config.metrics.stale_after_days == 40
        # Defaults should still apply
        assert config.preferences.default_water_temp == 93.0
        assert config.database.mongodb_url == "mongodb://localhost:27017"

    def test_invalid_unit_rejected(self, tmp_path):
        config_file = tmp_path / "config.toml"
        config_file.write_text('[preferences]\nweight_unit = "pounds"\n')

        with pytest.raises(ValidationError):
            load_config(config_file)


class TestEnvOverrides:
    """Test environment variable overrides."""

    def test_apply_database_overrides(self):
        config_dict = {}
        with patch.dict(
            os.environ,
            {
                "ESPRESSOBOX_MONGODB_URL": "mongodb://db.example:27017",
                "ESPRESSOBOX_MONGODB_DATABASE": "diary",
            },
        ):
            apply_env_overrides(config_dict)
        assert config_dict["database"]["mongodb_url"] == "mongodb://db.example:27017"
        assert config_dict["database"]["mongodb_database"] == "diary"

    def test_numeric_overrides_are_converted(self):
        config_dict = {}
        with patch.dict(
            os.environ,
            {
                "ESPRESSOBOX_PREFERENCES_DEFAULT_DOSE_IN": "19.5",
                "ESPRESSOBOX_METRICS_LOW_STOCK_GRAMS": "100",
                "ESPRESSOBOX_TIMER_TICK_INTERVAL": "0.25",
            },
        ):
            apply_env_overrides(config_dict)
        assert config_dict["preferences"]["default_dose_in"] == 19.5
        assert config_dict["metrics"]["low_stock_grams"] == 100.0
        assert config_dict["timer"]["tick_interval"] == 0.25

    def test_log_level_is_uppercased(self):
        config_dict = {}
        with patch.dict(os.environ, {"ESPRESSOBOX_LOG_LEVEL": "debug"}):
            apply_env_overrides(config_dict)
        assert config_dict["logging"]["level"] == "DEBUG"

    def test_every_field_has_an_env_name(self):
        mappings = env_mappings()
        assert mappings["ESPRESSOBOX_STORAGE_MAX_UPLOAD_MB"] == ("storage", "max_upload_mb")
        assert mappings["ESPRESSOBOX_METRICS_BALANCE_TOLERANCE"] == ("metrics", "balance_tolerance")
        assert mappings["ESPRESSOBOX_DATA_DIR"] == ("storage", "data_dir")

    def test_tuple_override_is_comma_separated(self):
        with patch.dict(os.environ, {"ESPRESSOBOX_METRICS_FRESHNESS_BREAKPOINTS": "5,10,15,20"}):
            config = load_config(Path("missing.toml"))
        assert config.metrics.freshness_breakpoints == (5, 10, 15, 20)
        assert config.metrics.stale_after_days == 20

    def test_env_overrides_file_values(self, tmp_path):
        config_file = tmp_path / "config.toml"
        config_file.write_text("[preferences]\ndefault_ratio = 2.5\n")

        with patch.dict(os.environ, {"ESPRESSOBOX_PREFERENCES_DEFAULT_RATIO": "1.8"}):
            config = load_config(config_file)
        assert config.preferences.default_ratio == 1.8


class TestSettings:
    """Test the Settings class."""

    def test_settings_property_accessors(self, tmp_path):
        config = EspressoboxConfig(
            storage=StorageConfig(data_dir=tmp_path / "brew"),
            preferences=BrewPreferences(default_dose_in=20.0),
        )
        settings = Settings(config=config)

        assert settings.app_name == "EspressoBox"
        assert settings.mongodb_database == "espressobox"
        assert settings.data_dir == tmp_path / "brew"
        assert settings.image_storage_path == tmp_path / "brew" / "images"
        assert settings.export_path == tmp_path / "brew" / "exports"
        assert settings.preferences.default_dose_in == 20.0
        assert settings.metrics.low_stock_grams == 50.0
        assert settings.timer.tick_interval == 0.1
        assert settings.log_level == "INFO"

    def test_get_settings_singleton(self):
        assert get_settings() is get_settings()

    def test_reset_settings_clears_cache(self):
        first = get_settings()
        reset_settings()
        assert get_settings() is not first

    def test_settings_read_data_dir_from_env(self, tmp_path):
        """The test fixtures point ESPRESSOBOX_DATA_DIR at a temp directory."""
        assert get_settings().data_dir == tmp_path / "data"


class TestFindConfigFile:
    def test_find_config_file_in_cwd(self, tmp_path):
        """The autouse fixture limits the search to tmp_path/config.toml."""
        (tmp_path / "config.toml").write_text('app_name = "Found"\n')
        assert find_config_file() == tmp_path / "config.toml"
        assert get_settings().app_name == "Found"

    def test_find_config_file_not_found(self):
        assert find_config_file() is None
