"""Building documents from a parsed export, with references re-linked."""

import logging
from datetime import timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from espressobox.models import Bean, BrewingSession, Grinder, Machine
from espressobox.schemas.export import (
    BeanExport,
    ExportDocument,
    GrinderExport,
    MachineExport,
    SessionExport,
)
from espressobox.services.exceptions import ImportParseError

logger = logging.getLogger(__name__)


class UnresolvedReference(BaseModel):
    session_id: str
    field: str
    target_id: str


class StagedImport(BaseModel):
    """Unsaved documents ready to be committed, in dependency order."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    beans: list[Bean] = Field(default_factory=list)
    grinders: list[Grinder] = Field(default_factory=list)
    machines: list[Machine] = Field(default_factory=list)
    sessions: list[BrewingSession] = Field(default_factory=list)
    unresolved: list[UnresolvedReference] = Field(default_factory=list)

    def documents(self) -> list:
        """All documents, referents before the sessions that point at them."""
        return [*self.beans, *self.grinders, *self.machines, *self.sessions]


def _bean_from_export(record: BeanExport) -> Bean:
    return Bean(
        id=record.id,
        name=record.name,
        roaster=record.roaster,
        origin=record.origin,
        roast_level=record.roast_level,
        roast_date=record.roast_date,
        process=record.process,
        variety=record.variety,
        tasting_notes=record.tasting_notes,
        price=record.price,
        weight=record.weight,
        notes=record.notes,
        batch_number=record.batch_number,
        purchase_date=record.purchase_date,
        is_archived=record.is_archived,
        created_at=record.created_at,
        updated_at=record.created_at,
    )


def _grinder_from_export(record: GrinderExport) -> Grinder:
    return Grinder(
        id=record.id,
        name=record.name,
        brand=record.brand,
        burr_type=record.burr_type,
        burr_size=record.burr_size,
        notes=record.notes,
        created_at=record.created_at,
        updated_at=record.created_at,
    )


def _machine_from_export(record: MachineExport) -> Machine:
    return Machine(
        id=record.id,
        name=record.name,
        brand=record.brand,
        model=record.model,
        boiler_type=record.boiler_type,
        group_head_type=record.group_head_type,
        pressure_bar=record.pressure_bar,
        notes=record.notes,
        purchase_date=record.purchase_date,
        created_at=record.created_at,
        updated_at=record.created_at,
    )


def stage_import(document: ExportDocument) -> StagedImport:
    """Build beans, grinders, machines and then sessions from an export.

    Session references are resolved against the entities in the same
    document. An identifier with no match leaves the reference empty and is
    recorded in ``StagedImport.unresolved``.

    Raises:
        ImportParseError: A record holds a value the document models reject,
            such as a taste score outside 1-5.
    """
    try:
        return _build(document)
    except ValidationError as e:
        raise ImportParseError(f"Invalid record in export document: {e}") from e


def _build(document: ExportDocument) -> StagedImport:
    staged = StagedImport(
        beans=[_bean_from_export(b) for b in document.beans],
        grinders=[_grinder_from_export(g) for g in document.grinders],
        machines=[_machine_from_export(m) for m in document.machines],
    )
    bean_map = {b.id: b for b in staged.beans}
    grinder_map = {g.id: g for g in staged.grinders}
    machine_map = {m.id: m for m in staged.machines}

    def resolve(record: SessionExport, field: str, known: dict) -> Optional[str]:
        target_id = getattr(record, field)
        if target_id is None:
            return None
        if target_id not in known:
            staged.unresolved.append(
                UnresolvedReference(session_id=record.id, field=field, target_id=target_id)
            )
            logger.warning("Session %s: %s %s not found, reference dropped", record.id, field, target_id)
            return None
        return target_id

    for record in document.sessions:
        staged.sessions.append(
            BrewingSession(
                id=record.id,
                start_time=record.start_time,
                end_time=record.start_time + timedelta(seconds=record.brew_time),
                brew_method=record.brew_method,
                grind_setting=record.grind_setting,
                dose_in=record.dose_in,
                yield_out=record.yield_out,
                brew_time=record.brew_time,
                water_temp=record.water_temp,
                pressure=record.pressure,
                rating=record.rating,
                notes=record.notes,
                created_at=record.created_at,
                bean_id=resolve(record, "bean_id", bean_map),
                grinder_id=resolve(record, "grinder_id", grinder_map),
                machine_id=resolve(record, "machine_id", machine_map),
                acidity=record.acidity,
                sweetness=record.sweetness,
                bitterness=record.bitterness,
                body_weight=record.body_weight,
                aftertaste=record.aftertaste,
                puck_prep_wdt=record.puck_prep_wdt,
                puck_prep_rdt=record.puck_prep_rdt,
            )
        )

    return staged
