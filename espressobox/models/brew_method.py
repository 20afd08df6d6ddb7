"""Brew method profile document model and built-in presets."""

from beanie import Document, Indexed
from pydantic import BaseModel, ConfigDict, Field, model_validator

from espressobox.models.base import UTCDatetime, new_id, utc_now


class ProfilePreset(BaseModel):
    """Factory defaults for one brew method profile."""

    model_config = ConfigDict(frozen=True)

    name: str
    icon: str
    sort_order: int
    default_dose_grams: float
    default_ratio_min: float
    default_ratio_max: float
    default_brew_time_min: float  # seconds
    default_brew_time_max: float  # seconds
    default_water_temp: float  # °C
    default_pressure: float  # bar

    @property
    def default_yield_grams(self) -> float:
        return self.default_dose_grams * (self.default_ratio_min + self.default_ratio_max) / 2


BUILTIN_PROFILES: list[ProfilePreset] = [
    ProfilePreset(
        name="Espresso", icon="cup", sort_order=1,
        default_dose_grams=18.0, default_ratio_min=2.0, default_ratio_max=2.5,
        default_brew_time_min=25.0, default_brew_time_max=30.0,
        default_water_temp=93.0, default_pressure=9.0,
    ),
    ProfilePreset(
        name="Aeropress", icon="plunger", sort_order=2,
        default_dose_grams=15.0, default_ratio_min=14.0, default_ratio_max=16.0,
        default_brew_time_min=60.0, default_brew_time_max=120.0,
        default_water_temp=85.0, default_pressure=0.0,
    ),
    ProfilePreset(
        name="French Press", icon="cylinder", sort_order=3,
        default_dose_grams=30.0, default_ratio_min=15.0, default_ratio_max=17.0,
        default_brew_time_min=240.0, default_brew_time_max=300.0,
        default_water_temp=93.0, default_pressure=0.0,
    ),
    ProfilePreset(
        name="Pour Over", icon="drop", sort_order=4,
        default_dose_grams=20.0, default_ratio_min=15.0, default_ratio_max=17.0,
        default_brew_time_min=180.0, default_brew_time_max=240.0,
        default_water_temp=93.0, default_pressure=0.0,
    ),
    ProfilePreset(
        name="Cold Brew", icon="snowflake", sort_order=5,
        default_dose_grams=100.0, default_ratio_min=5.0, default_ratio_max=7.0,
        default_brew_time_min=43200.0, default_brew_time_max=86400.0,  # 12-24 hours
        default_water_temp=20.0, default_pressure=0.0,
    ),
    ProfilePreset(
        name="Moka Pot", icon="flame", sort_order=6,
        default_dose_grams=20.0, default_ratio_min=8.0, default_ratio_max=10.0,
        default_brew_time_min=240.0, default_brew_time_max=360.0,
        default_water_temp=100.0, default_pressure=1.5,
    ),
]


class BrewMethodProfile(Document):
    """Editable defaults and target windows for a brew method."""

    id: str = Field(default_factory=new_id)

    name: Indexed(str, unique=True)
    icon: str = "cup"
    is_active: bool = True
    sort_order: int = 0
    default_dose_grams: float = Field(default=18.0, ge=0)
    default_ratio_min: float = Field(default=2.0, gt=0)
    default_ratio_max: float = Field(default=2.5, gt=0)
    default_brew_time_min: float = Field(default=25.0, ge=0)
    default_brew_time_max: float = Field(default=30.0, ge=0)
    default_water_temp: float = 93.0
    default_pressure: float = 9.0

    created_at: UTCDatetime = Field(default_factory=utc_now)
    updated_at: UTCDatetime = Field(default_factory=utc_now)

    class Settings:
        name = "brew_methods"

    @model_validator(mode="after")
    def check_windows(self) -> "BrewMethodProfile":
        if self.default_ratio_min > self.default_ratio_max:
            raise ValueError("default_ratio_min must not exceed default_ratio_max")
        if self.default_brew_time_min > self.default_brew_time_max:
            raise ValueError("default_brew_time_min must not exceed default_brew_time_max")
        return self

    @classmethod
    def from_preset(cls, preset: ProfilePreset) -> "BrewMethodProfile":
        return cls(**preset.model_dump())

    @property
    def default_yield_grams(self) -> float:
        return self.default_dose_grams * (self.default_ratio_min + self.default_ratio_max) / 2

    def __repr__(self) -> str:
        return f"<BrewMethodProfile(id={self.id}, name={self.name})>"
