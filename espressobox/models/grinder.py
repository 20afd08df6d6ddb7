"""Grinder document model for MongoDB."""

from typing import Optional

from beanie import Document, Indexed
from pydantic import Field

from espressobox.models.base import UTCDatetime, new_id, utc_now

UNKNOWN_GRINDER = "Unknown Grinder"
UNKNOWN_BRAND = "Unknown Brand"


class Grinder(Document):
    """A coffee grinder."""

    id: str = Field(default_factory=new_id)

    name: Indexed(str) = ""
    brand: str = ""
    burr_type: str = "Flat"
    burr_size: int = Field(default=0, ge=0)  # mm
    image_path: Optional[str] = None
    notes: str = ""

    created_at: UTCDatetime = Field(default_factory=utc_now)
    updated_at: UTCDatetime = Field(default_factory=utc_now)

    class Settings:
        name = "grinders"

    @property
    def display_name(self) -> str:
        return self.name or UNKNOWN_GRINDER

    @property
    def display_brand(self) -> str:
        return self.brand or UNKNOWN_BRAND

    def __repr__(self) -> str:
        return f"<Grinder(id={self.id}, name={self.name})>"
