"""Tests for grinder and machine operations."""

import pytest

from espressobox.models import BrewingSession, Grinder, Machine
from espressobox.services.equipment_management import (
    create_grinder,
    create_machine,
    delete_grinder,
    delete_machine,
    get_grinder,
    get_machine,
    list_grinders,
    list_machines,
    update_grinder,
    update_machine,
)
from espressobox.services.exceptions import GrinderNotFoundError, MachineNotFoundError


class TestDisplayNames:
    async def test_grinder_placeholders(self, init_test_db):
        grinder = Grinder()
        assert grinder.display_name == "Unknown Grinder"
        assert grinder.display_brand == "Unknown Brand"

    async def test_machine_defaults(self, init_test_db):
        machine = Machine(name="Gaggia Classic")
        assert machine.display_name == "Gaggia Classic"
        assert machine.display_brand == "Unknown Brand"
        assert machine.pressure_bar == 9.0
        assert machine.boiler_type == "Single"
        assert machine.purchase_date is None


async def test_grinders_listed_by_name(init_test_db):
    await create_grinder(name="Niche Zero")
    await create_grinder(name="Eureka Mignon", burr_type="Flat", burr_size=55)
    assert [g.name for g in await list_grinders()] == ["Eureka Mignon", "Niche Zero"]


async def test_missing_equipment(init_test_db):
    with pytest.raises(GrinderNotFoundError, match="Grinder not found"):
        await get_grinder("missing")
    with pytest.raises(MachineNotFoundError, match="Machine not found"):
        await get_machine("missing")


async def test_delete_grinder_unlinks_sessions(sample_session, sample_grinder):
    assert await delete_grinder(sample_grinder.id) == 1

    session = await BrewingSession.get(sample_session.id)
    assert session.grinder_id is None
    assert session.bean_id == sample_session.bean_id
    assert session.machine_id == sample_session.machine_id
    assert await list_grinders() == []


async def test_delete_machine_unlinks_sessions(sample_session, sample_machine):
    assert await delete_machine(sample_machine.id) == 1

    session = await BrewingSession.get(sample_session.id)
    assert session.machine_id is None
    assert session.grinder_id == sample_session.grinder_id


async def test_delete_unused_machine(init_test_db):
    machine = await create_machine(name="Flair 58", brand="Flair", pressure_bar=6.0)
    assert await delete_machine(machine.id) == 0
    assert await list_machines() == []


async def test_update_grinder(sample_grinder):
    grinder = await update_grinder(sample_grinder.id, {"burr_size": 64, "id": "ignored"})
    assert grinder.burr_size == 64
    assert grinder.id == sample_grinder.id
    assert (await get_grinder(sample_grinder.id)).burr_size == 64


async def test_update_machine_coerces_dates(sample_machine):
    machine = await update_machine(sample_machine.id, {"purchase_date": "2025-12-24T00:00:00"})
    assert machine.purchase_date.tzinfo is not None
    assert machine.purchase_date.year == 2025
