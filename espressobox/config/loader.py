"""Configuration loader for EspressoBox.

Reads config.toml from the first location that has one, then lets
``ESPRESSOBOX_*`` environment variables override individual values.

Every field of every config section can be overridden as
``ESPRESSOBOX_<SECTION>_<FIELD>``, for example
``ESPRESSOBOX_PREFERENCES_WEIGHT_UNIT=ounces``. A few shorthands cover the
values most often set from the environment.
"""

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from espressobox.config.schema import EspressoboxConfig

logger = logging.getLogger(__name__)

# Try to import tomllib (Python 3.11+) or fall back to tomli
try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found]

ENV_PREFIX = "ESPRESSOBOX"

SHORTHANDS = {
    "MONGODB_URL": ("database", "mongodb_url"),
    "MONGODB_DATABASE": ("database", "mongodb_database"),
    "DATA_DIR": ("storage", "data_dir"),
    "LOG_LEVEL": ("logging", "level"),
}


def get_config_search_paths() -> list[Path]:
    """Config file locations, first found wins.

    1. ./config.toml (working directory)
    2. ~/.config/espressobox/config.toml (user config)
    3. /etc/espressobox/config.toml (system config)
    """
    return [
        Path.cwd() / "config.toml",
        Path.home() / ".config" / "espressobox" / "config.toml",
        Path("/etc/espressobox/config.toml"),
    ]


def find_config_file() -> Path | None:
    for path in get_config_search_paths():
        if path.is_file():
            logger.debug("Found config file: %s", path)
            return path
    return None


def load_toml_file(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _section_models() -> dict[str, type[BaseModel]]:
    """Config sections keyed by their name in config.toml."""
    sections = {}
    for name, field in EspressoboxConfig.model_fields.items():
        if isinstance(field.annotation, type) and issubclass(field.annotation, BaseModel):
            sections[name] = field.annotation
    return sections


def env_mappings(prefix: str = ENV_PREFIX) -> dict[str, tuple[str, str]]:
    """Environment variable name -> (section, key) for every config field."""
    mappings = {}
    for section, model in _section_models().items():
        for key in model.model_fields:
            mappings[f"{prefix}_{section.upper()}_{key.upper()}"] = (section, key)
    for name, target in SHORTHANDS.items():
        mappings[f"{prefix}_{name}"] = target
    return mappings


def _convert(section: str, key: str, value: str) -> Any:
    annotation = _section_models()[section].model_fields[key].annotation
    if annotation is int:
        return int(value)
    if annotation is float:
        return float(value)
    if annotation is bool:
        return value.strip().lower() in ("1", "true", "yes", "on")
    if getattr(annotation, "__origin__", None) is tuple:
        # Comma separated, e.g. "7,14,21,30"
        return [int(part) for part in value.split(",")]
    if key == "level":
        return value.upper()
    return value


def apply_env_overrides(config_dict: dict[str, Any], prefix: str = ENV_PREFIX) -> None:
    """Apply environment variable overrides to ``config_dict`` in place."""
    for env_var, (section, key) in env_mappings(prefix).items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        config_dict.setdefault(section, {})[key] = _convert(section, key, value)
        logger.debug("%s overrides %s.%s", env_var, section, key)


def load_config(config_file: Path | None = None) -> EspressoboxConfig:
    """Load configuration from TOML with environment variable overrides.

    Args:
        config_file: Optional path to config file. If not provided,
                     searches default locations.
    """
    config_dict: dict[str, Any] = {}

    if config_file is None:
        config_file = find_config_file()

    if config_file and config_file.exists():
        logger.info("Loading config from: %s", config_file)
        config_dict = load_toml_file(config_file)
    else:
        logger.info("No config file found, using defaults with env overrides")

    apply_env_overrides(config_dict)
    return EspressoboxConfig(**config_dict)
