"""Brewing session operations.

Sessions are immutable once saved: they can be created, read and deleted.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from espressobox.config.schema import MetricsConfig
from espressobox.models import BrewingSession
from espressobox.models.base import utc_now
from espressobox.services import metrics
from espressobox.services.bean_management import get_bean
from espressobox.services.brew_method_management import find_profile_for_method
from espressobox.services.equipment_management import get_grinder, get_machine
from espressobox.services.exceptions import SessionNotFoundError
from espressobox.services.image_storage import ImageStorageService
from espressobox.services.persistence import storage_errors

logger = logging.getLogger(__name__)


async def create_session(
    *,
    dose_in: float,
    yield_out: float,
    brew_time: float,
    start_time: Optional[datetime] = None,
    bean_id: Optional[str] = None,
    grinder_id: Optional[str] = None,
    machine_id: Optional[str] = None,
    **fields: Any,
) -> BrewingSession:
    """Record a finished brew.

    ``end_time`` is derived as ``start_time + brew_time``. Referenced bean,
    grinder and machine must exist.

    Raises:
        BeanNotFoundError, GrinderNotFoundError, MachineNotFoundError: A
            reference points at nothing.
    """
    if bean_id is not None:
        await get_bean(bean_id)
    if grinder_id is not None:
        await get_grinder(grinder_id)
    if machine_id is not None:
        await get_machine(machine_id)

    now = utc_now()
    start = start_time or now - timedelta(seconds=brew_time)
    session = BrewingSession(
        start_time=start,
        end_time=metrics.ensure_utc(start) + timedelta(seconds=brew_time),
        dose_in=dose_in,
        yield_out=yield_out,
        brew_time=brew_time,
        bean_id=bean_id,
        grinder_id=grinder_id,
        machine_id=machine_id,
        created_at=now,
        **fields,
    )
    with storage_errors("save session"):
        await session.insert()
    logger.info(
        "Logged session %s: %.1fg in, %.1fg out, %.0fs",
        session.id,
        dose_in,
        yield_out,
        brew_time,
    )
    return session


async def get_session(session_id: str) -> BrewingSession:
    with storage_errors("load session"):
        session = await BrewingSession.get(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return session


async def list_sessions(
    *,
    bean_id: Optional[str] = None,
    grinder_id: Optional[str] = None,
    machine_id: Optional[str] = None,
    brew_method: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[BrewingSession]:
    """Sessions newest first, optionally filtered by reference or method."""
    conditions: dict[str, Any] = {}
    if bean_id is not None:
        conditions["bean_id"] = bean_id
    if grinder_id is not None:
        conditions["grinder_id"] = grinder_id
    if machine_id is not None:
        conditions["machine_id"] = machine_id
    if brew_method is not None:
        conditions["brew_method"] = brew_method

    query = BrewingSession.find(conditions).sort("-start_time")
    if limit:
        query = query.limit(limit)
    with storage_errors("list sessions"):
        return await query.to_list()


async def delete_session(session_id: str, image_storage: Optional[ImageStorageService] = None) -> None:
    session = await get_session(session_id)
    with storage_errors("delete session"):
        await session.delete()
    if session.image_path and image_storage is not None:
        await image_storage.delete_image(session.image_path)
    logger.info("Deleted session %s", session_id)


async def history_stats(
    now: Optional[datetime] = None,
) -> metrics.HistoryStats:
    sessions = await list_sessions()
    return metrics.history_stats(sessions, now)


async def session_summary(
    session_id: str,
    config: MetricsConfig = metrics.DEFAULT_METRICS,
) -> metrics.SessionSummary:
    """Summary of a session, advised against its brew method profile if one exists."""
    session = await get_session(session_id)
    profile = await find_profile_for_method(session.brew_method)
    return metrics.summarize_session(session, config, profile)
