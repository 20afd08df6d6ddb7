"""Bean document model for MongoDB."""

from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field

from espressobox.models.base import UTCDatetime, new_id, utc_now
from espressobox.services import metrics

UNKNOWN_BEAN = "Unknown Bean"
UNKNOWN_ROASTER = "Unknown Roaster"
UNKNOWN_ORIGIN = "Unknown Origin"


class RoastLevel(str, Enum):
    LIGHT = "Light"
    MEDIUM_LIGHT = "Medium-Light"
    MEDIUM = "Medium"
    MEDIUM_DARK = "Medium-Dark"
    DARK = "Dark"


class ProcessMethod(str, Enum):
    WASHED = "Washed"
    NATURAL = "Natural"
    HONEY = "Honey"
    ANAEROBIC = "Anaerobic"
    OTHER = "Other"


class Bean(Document):
    """A bag of coffee beans in the inventory."""

    id: str = Field(default_factory=new_id)

    name: Indexed(str) = ""
    roaster: Indexed(str) = ""
    origin: str = ""
    roast_level: RoastLevel = RoastLevel.MEDIUM
    roast_date: UTCDatetime = Field(default_factory=utc_now)
    process: ProcessMethod = ProcessMethod.WASHED
    variety: str = "Arabica"
    tasting_notes: str = ""
    price: float = Field(default=0.0, ge=0)
    weight: float = Field(default=0.0, ge=0)  # grams
    is_archived: bool = False
    batch_number: int = Field(default=1, ge=1)
    purchase_date: UTCDatetime = Field(default_factory=utc_now)
    image_path: Optional[str] = None
    notes: str = ""

    created_at: UTCDatetime = Field(default_factory=utc_now)
    updated_at: UTCDatetime = Field(default_factory=utc_now)

    class Settings:
        name = "beans"
        indexes = [
            "name",
            "roaster",
            "is_archived",
            [("name", 1), ("roaster", 1), ("batch_number", 1)],
        ]

    @property
    def display_name(self) -> str:
        return self.name or UNKNOWN_BEAN

    @property
    def display_roaster(self) -> str:
        return self.roaster or UNKNOWN_ROASTER

    @property
    def display_origin(self) -> str:
        return self.origin or UNKNOWN_ORIGIN

    def days_from_roast(self, now: Optional[datetime] = None) -> int:
        return metrics.days_from_roast(self.roast_date, now)

    def freshness_level(self, now: Optional[datetime] = None) -> metrics.FreshnessLevel:
        return metrics.freshness_level(self.days_from_roast(now))

    def __repr__(self) -> str:
        return f"<Bean(id={self.id}, name={self.name}, batch={self.batch_number})>"
