"""Espresso machine document model for MongoDB."""

from typing import Optional

from beanie import Document, Indexed
from pydantic import Field

from espressobox.models.base import UTCDatetime, new_id, utc_now

UNKNOWN_MACHINE = "Unknown Machine"
UNKNOWN_BRAND = "Unknown Brand"


class Machine(Document):
    """An espresso machine."""

    id: str = Field(default_factory=new_id)

    name: Indexed(str) = ""
    brand: str = ""
    model: str = ""
    boiler_type: str = "Single"
    group_head_type: str = ""
    pressure_bar: float = Field(default=9.0, ge=0)
    purchase_date: Optional[UTCDatetime] = None
    image_path: Optional[str] = None
    notes: str = ""

    created_at: UTCDatetime = Field(default_factory=utc_now)
    updated_at: UTCDatetime = Field(default_factory=utc_now)

    class Settings:
        name = "machines"

    @property
    def display_name(self) -> str:
        return self.name or UNKNOWN_MACHINE

    @property
    def display_brand(self) -> str:
        return self.brand or UNKNOWN_BRAND

    def __repr__(self) -> str:
        return f"<Machine(id={self.id}, name={self.name})>"
