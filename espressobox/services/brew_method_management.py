"""Brew method profile operations, including seeding the built-in presets."""

import logging
from typing import Any, Optional

from espressobox.models import BUILTIN_PROFILES, BrewMethodProfile
from espressobox.models.base import utc_now
from espressobox.services.exceptions import BrewMethodNotFoundError
from espressobox.services.persistence import apply_changes, storage_errors
from espressobox.services.recipe_calculator import BrewMethod

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "name",
    "icon",
    "is_active",
    "sort_order",
    "default_dose_grams",
    "default_ratio_min",
    "default_ratio_max",
    "default_brew_time_min",
    "default_brew_time_max",
    "default_water_temp",
    "default_pressure",
}


async def seed_default_methods() -> list[BrewMethodProfile]:
    """Insert the built-in profiles that are missing, matched by name.

    Safe to run repeatedly; existing profiles, edited or not, are left alone.

    Returns:
        The profiles that were inserted.
    """
    inserted = []
    with storage_errors("seed brew methods"):
        existing = {p.name for p in await BrewMethodProfile.find_all().to_list()}
        for preset in BUILTIN_PROFILES:
            if preset.name in existing:
                continue
            profile = BrewMethodProfile.from_preset(preset)
            await profile.insert()
            inserted.append(profile)
    if inserted:
        logger.info("Seeded %d brew method profiles", len(inserted))
    return inserted


async def list_methods(active_only: bool = False) -> list[BrewMethodProfile]:
    conditions: dict[str, Any] = {"is_active": True} if active_only else {}
    with storage_errors("list brew methods"):
        return await BrewMethodProfile.find(conditions).sort("+sort_order").to_list()


async def get_method(method_id: str) -> BrewMethodProfile:
    with storage_errors("load brew method"):
        profile = await BrewMethodProfile.get(method_id)
    if profile is None:
        raise BrewMethodNotFoundError(method_id)
    return profile


async def find_method_by_name(name: str) -> Optional[BrewMethodProfile]:
    with storage_errors("load brew method"):
        return await BrewMethodProfile.find_one({"name": name})


async def find_profile_for_method(tag: str) -> Optional[BrewMethodProfile]:
    """The profile matching a session's brew method tag, if any."""
    try:
        method = BrewMethod.from_tag(tag)
    except ValueError:
        return None
    return await find_method_by_name(method.display_name)


async def create_method(*, name: str, **fields: Any) -> BrewMethodProfile:
    now = utc_now()
    profile = BrewMethodProfile(name=name, created_at=now, updated_at=now, **fields)
    with storage_errors("create brew method"):
        await profile.insert()
    return profile


async def update_method(method_id: str, data: dict[str, Any]) -> BrewMethodProfile:
    profile = await get_method(method_id)
    return await apply_changes(profile, data, EDITABLE_FIELDS, "update brew method")


async def delete_method(method_id: str) -> None:
    profile = await get_method(method_id)
    with storage_errors("delete brew method"):
        await profile.delete()
    logger.info("Deleted brew method %s", profile.name)
