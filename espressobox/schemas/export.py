"""Pydantic schemas for data export and import.

The hierarchical document (JSON/YAML) uses camelCase keys so that files
written by earlier versions of the diary load unchanged. Fields that older
files may lack carry defaults.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from espressobox import __version__
from espressobox.models.base import UTCDatetime, utc_now
from espressobox.models.bean import ProcessMethod, RoastLevel
from espressobox.services import metrics


class ExportFormat(str, Enum):
    """Supported export formats."""

    JSON = "json"
    YAML = "yaml"
    CSV = "csv"
    XLSX = "xlsx"

    @property
    def is_hierarchical(self) -> bool:
        return self in (ExportFormat.JSON, ExportFormat.YAML)


def _normalize_uuid(value: str) -> str:
    return str(uuid.UUID(value))


ExportId = Annotated[str, AfterValidator(_normalize_uuid)]


class _ExportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class BeanExport(_ExportModel):
    id: ExportId
    name: str
    roaster: str
    origin: str
    roast_level: RoastLevel
    roast_date: UTCDatetime
    process: ProcessMethod
    variety: str
    tasting_notes: str
    price: float
    weight: float
    notes: str
    created_at: UTCDatetime
    batch_number: int = 1
    purchase_date: Optional[UTCDatetime] = None
    is_archived: bool = False

    @model_validator(mode="after")
    def _default_purchase_date(self) -> "BeanExport":
        if self.purchase_date is None:
            self.purchase_date = self.created_at
        return self

    @staticmethod
    def from_bean(bean: Any) -> "BeanExport":
        return BeanExport(
            id=bean.id,
            name=bean.name,
            roaster=bean.roaster,
            origin=bean.origin,
            roast_level=bean.roast_level,
            roast_date=bean.roast_date,
            process=bean.process,
            variety=bean.variety,
            tasting_notes=bean.tasting_notes,
            price=bean.price,
            weight=bean.weight,
            notes=bean.notes,
            created_at=bean.created_at,
            batch_number=bean.batch_number,
            purchase_date=bean.purchase_date,
            is_archived=bean.is_archived,
        )


class GrinderExport(_ExportModel):
    id: ExportId
    name: str
    brand: str
    burr_type: str
    burr_size: int
    notes: str
    created_at: UTCDatetime

    @staticmethod
    def from_grinder(grinder: Any) -> "GrinderExport":
        return GrinderExport(
            id=grinder.id,
            name=grinder.name,
            brand=grinder.brand,
            burr_type=grinder.burr_type,
            burr_size=grinder.burr_size,
            notes=grinder.notes,
            created_at=grinder.created_at,
        )


class MachineExport(_ExportModel):
    id: ExportId
    name: str
    brand: str
    model: str
    boiler_type: str
    group_head_type: str
    pressure_bar: float
    notes: str
    purchase_date: Optional[UTCDatetime] = None
    created_at: UTCDatetime

    @staticmethod
    def from_machine(machine: Any) -> "MachineExport":
        return MachineExport(
            id=machine.id,
            name=machine.name,
            brand=machine.brand,
            model=machine.model,
            boiler_type=machine.boiler_type,
            group_head_type=machine.group_head_type,
            pressure_bar=machine.pressure_bar,
            notes=machine.notes,
            purchase_date=machine.purchase_date,
            created_at=machine.created_at,
        )


class SessionExport(_ExportModel):
    id: ExportId
    start_time: UTCDatetime
    brew_method: str
    grind_setting: str
    dose_in: float
    yield_out: float
    brew_time: float
    water_temp: float
    pressure: float
    rating: int
    notes: str
    created_at: UTCDatetime
    grinder_id: Optional[ExportId] = None
    machine_id: Optional[ExportId] = None
    bean_id: Optional[ExportId] = None
    acidity: int = 3
    sweetness: int = 3
    bitterness: int = 3
    body_weight: int = 3
    aftertaste: int = 3
    puck_prep_wdt: bool = Field(default=False, alias="puckPrepWDT")
    puck_prep_rdt: bool = Field(default=False, alias="puckPrepRDT")

    @staticmethod
    def from_session(session: Any) -> "SessionExport":
        return SessionExport(
            id=session.id,
            start_time=session.start_time,
            brew_method=session.brew_method,
            grind_setting=session.grind_setting,
            dose_in=session.dose_in,
            yield_out=session.yield_out,
            brew_time=session.brew_time,
            water_temp=session.water_temp,
            pressure=session.pressure,
            rating=session.rating,
            notes=session.notes,
            created_at=session.created_at,
            grinder_id=session.grinder_id,
            machine_id=session.machine_id,
            bean_id=session.bean_id,
            acidity=session.acidity,
            sweetness=session.sweetness,
            bitterness=session.bitterness,
            body_weight=session.body_weight,
            aftertaste=session.aftertaste,
            puck_prep_wdt=session.puck_prep_wdt,
            puck_prep_rdt=session.puck_prep_rdt,
        )


class ExportDocument(_ExportModel):
    """The complete entity graph as written to an export file."""

    beans: list[BeanExport] = Field(default_factory=list)
    grinders: list[GrinderExport] = Field(default_factory=list)
    machines: list[MachineExport] = Field(default_factory=list)
    sessions: list[SessionExport] = Field(default_factory=list)
    export_date: UTCDatetime = Field(default_factory=utc_now)
    app_version: str = __version__

    @property
    def total_count(self) -> int:
        return len(self.beans) + len(self.grinders) + len(self.machines) + len(self.sessions)


class SessionFlatExport(BaseModel):
    """Flat brewing session schema for CSV/Excel export."""

    id: str
    start_time: datetime
    brew_method: str
    bean_name: str | None = None
    roaster: str | None = None
    grinder_name: str | None = None
    machine_name: str | None = None
    grind_setting: str
    dose_in: float
    yield_out: float
    brew_ratio: float
    brew_time: float
    extraction: str
    quality: str
    water_temp: float
    pressure: float
    rating: int
    acidity: int
    sweetness: int
    bitterness: int
    body_weight: int
    aftertaste: int
    taste_balance: str
    puck_prep_wdt: bool
    puck_prep_rdt: bool
    notes: str

    @staticmethod
    def from_session(
        session: Any,
        bean: Any | None = None,
        grinder: Any | None = None,
        machine: Any | None = None,
        config: Any = metrics.DEFAULT_METRICS,
    ) -> "SessionFlatExport":
        """Create a flat row from a session and its resolved references."""
        ratio = metrics.brew_ratio(session.dose_in, session.yield_out)
        return SessionFlatExport(
            id=str(session.id),
            start_time=session.start_time,
            brew_method=session.brew_method,
            bean_name=bean.name if bean else None,
            roaster=bean.roaster if bean else None,
            grinder_name=grinder.name if grinder else None,
            machine_name=machine.name if machine else None,
            grind_setting=session.grind_setting,
            dose_in=session.dose_in,
            yield_out=session.yield_out,
            brew_ratio=round(ratio, 2),
            brew_time=session.brew_time,
            extraction=metrics.classify_extraction(session.brew_time, config).value,
            quality=metrics.assess_quality(ratio, session.brew_time, config).value,
            water_temp=session.water_temp,
            pressure=session.pressure,
            rating=session.rating,
            acidity=session.acidity,
            sweetness=session.sweetness,
            bitterness=session.bitterness,
            body_weight=session.body_weight,
            aftertaste=session.aftertaste,
            taste_balance=metrics.taste_balance(metrics.TasteProfile.of(session), config).value,
            puck_prep_wdt=session.puck_prep_wdt,
            puck_prep_rdt=session.puck_prep_rdt,
            notes=session.notes,
        )
