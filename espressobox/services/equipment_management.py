"""Grinder and machine operations."""

import logging
from typing import Any, Optional

from espressobox.models import BrewingSession, Grinder, Machine
from espressobox.models.base import utc_now
from espressobox.services.exceptions import GrinderNotFoundError, MachineNotFoundError
from espressobox.services.image_storage import ImageStorageService
from espressobox.services.persistence import apply_changes, storage_errors

logger = logging.getLogger(__name__)

GRINDER_FIELDS = {"name", "brand", "burr_type", "burr_size", "image_path", "notes"}
MACHINE_FIELDS = {
    "name",
    "brand",
    "model",
    "boiler_type",
    "group_head_type",
    "pressure_bar",
    "purchase_date",
    "image_path",
    "notes",
}


# =============================================================================
# Grinders
# =============================================================================


async def create_grinder(*, name: str, brand: str = "", **fields: Any) -> Grinder:
    now = utc_now()
    grinder = Grinder(name=name, brand=brand, created_at=now, updated_at=now, **fields)
    with storage_errors("create grinder"):
        await grinder.insert()
    logger.info("Created grinder %s (%s)", grinder.id, grinder.display_name)
    return grinder


async def get_grinder(grinder_id: str) -> Grinder:
    with storage_errors("load grinder"):
        grinder = await Grinder.get(grinder_id)
    if grinder is None:
        raise GrinderNotFoundError(grinder_id)
    return grinder


async def update_grinder(grinder_id: str, data: dict[str, Any]) -> Grinder:
    grinder = await get_grinder(grinder_id)
    return await apply_changes(grinder, data, GRINDER_FIELDS, "update grinder")


async def list_grinders() -> list[Grinder]:
    with storage_errors("list grinders"):
        return await Grinder.find_all().sort("+name").to_list()


async def delete_grinder(grinder_id: str, image_storage: Optional[ImageStorageService] = None) -> int:
    """Delete a grinder and clear it from its sessions. Returns the number unlinked."""
    grinder = await get_grinder(grinder_id)
    with storage_errors("delete grinder"):
        unlinked = await BrewingSession.find({"grinder_id": grinder.id}).count()
        await BrewingSession.find({"grinder_id": grinder.id}).update({"$set": {"grinder_id": None}})
        await grinder.delete()
    if grinder.image_path and image_storage is not None:
        await image_storage.delete_image(grinder.image_path)
    logger.info("Deleted grinder %s, unlinked %d sessions", grinder.id, unlinked)
    return unlinked


# =============================================================================
# Machines
# =============================================================================


async def create_machine(*, name: str, brand: str = "", **fields: Any) -> Machine:
    now = utc_now()
    machine = Machine(name=name, brand=brand, created_at=now, updated_at=now, **fields)
    with storage_errors("create machine"):
        await machine.insert()
    logger.info("Created machine %s (%s)", machine.id, machine.display_name)
    return machine


async def get_machine(machine_id: str) -> Machine:
    with storage_errors("load machine"):
        machine = await Machine.get(machine_id)
    if machine is None:
        raise MachineNotFoundError(machine_id)
    return machine


async def update_machine(machine_id: str, data: dict[str, Any]) -> Machine:
    machine = await get_machine(machine_id)
    return await apply_changes(machine, data, MACHINE_FIELDS, "update machine")


async def list_machines() -> list[Machine]:
    with storage_errors("list machines"):
        return await Machine.find_all().sort("+name").to_list()


async def delete_machine(machine_id: str, image_storage: Optional[ImageStorageService] = None) -> int:
    """Delete a machine and clear it from its sessions. Returns the number unlinked."""
    machine = await get_machine(machine_id)
    with storage_errors("delete machine"):
        unlinked = await BrewingSession.find({"machine_id": machine.id}).count()
        await BrewingSession.find({"machine_id": machine.id}).update({"$set": {"machine_id": None}})
        await machine.delete()
    if machine.image_path and image_storage is not None:
        await image_storage.delete_image(machine.image_path)
    logger.info("Deleted machine %s, unlinked %d sessions", machine.id, unlinked)
    return unlinked
