"""BrewingSession document model for MongoDB."""

from typing import Optional

from beanie import Document, Indexed
from pydantic import Field

from espressobox.models.base import UTCDatetime, new_id, utc_now
from espressobox.services import metrics


class BrewingSession(Document):
    """One recorded brew.

    ``bean_id``, ``grinder_id`` and ``machine_id`` are weak references: they
    are cleared when the referenced document is deleted, and the session
    itself is kept.
    """

    id: str = Field(default_factory=new_id)

    start_time: UTCDatetime = Field(default_factory=utc_now)
    end_time: Optional[UTCDatetime] = None
    brew_method: str = "espresso"
    grind_setting: str = ""
    dose_in: float = Field(default=0.0, ge=0)  # grams
    yield_out: float = Field(default=0.0, ge=0)  # grams
    brew_time: float = Field(default=0.0, ge=0)  # seconds
    water_temp: float = 93.0  # °C
    pressure: float = 9.0  # bar
    rating: int = Field(default=0, ge=0, le=5)  # 0 = unrated

    # Taste scores, 1-5
    acidity: int = Field(default=3, ge=1, le=5)
    sweetness: int = Field(default=3, ge=1, le=5)
    bitterness: int = Field(default=3, ge=1, le=5)
    body_weight: int = Field(default=3, ge=1, le=5)
    aftertaste: int = Field(default=3, ge=1, le=5)

    puck_prep_wdt: bool = False
    puck_prep_rdt: bool = False
    image_path: Optional[str] = None
    notes: str = ""

    bean_id: Optional[Indexed(str)] = None
    grinder_id: Optional[Indexed(str)] = None
    machine_id: Optional[Indexed(str)] = None

    created_at: UTCDatetime = Field(default_factory=utc_now)

    class Settings:
        name = "brewing_sessions"
        indexes = [
            "start_time",
        ]

    @property
    def brew_ratio(self) -> float:
        return metrics.brew_ratio(self.dose_in, self.yield_out)

    @property
    def extraction(self) -> metrics.Extraction:
        return metrics.classify_extraction(self.brew_time)

    @property
    def quality_assessment(self) -> metrics.QualityAssessment:
        return metrics.assess_quality(self.brew_ratio, self.brew_time)

    @property
    def taste(self) -> metrics.TasteProfile:
        return metrics.TasteProfile.of(self)

    def __repr__(self) -> str:
        return (
            f"<BrewingSession(id={self.id}, method={self.brew_method}, "
            f"ratio={metrics.format_ratio(self.brew_ratio)})>"
        )
