"""Bean inventory operations."""

import logging
import re
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from espressobox.config.schema import MetricsConfig
from espressobox.models import Bean, BrewingSession
from espressobox.models.base import utc_now
from espressobox.services import metrics
from espressobox.services.exceptions import BeanNotFoundError
from espressobox.services.image_storage import ImageStorageService
from espressobox.services.persistence import apply_changes, storage_errors

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "name",
    "roaster",
    "origin",
    "roast_level",
    "roast_date",
    "process",
    "variety",
    "tasting_notes",
    "price",
    "weight",
    "purchase_date",
    "image_path",
    "notes",
}

# Fields a new batch inherits from the bean it was created from
BATCH_COPIED_FIELDS = (
    "name",
    "roaster",
    "origin",
    "roast_level",
    "process",
    "variety",
    "tasting_notes",
    "notes",
    "image_path",
)


class BeanSort(str, Enum):
    NAME = "name"
    ROASTER = "roaster"
    FRESHNESS = "freshness"
    CREATED = "created"
    REMAINING = "remaining"


async def create_bean(
    *,
    name: str,
    roaster: str = "",
    weight: float = 0.0,
    roast_date: Optional[datetime] = None,
    purchase_date: Optional[datetime] = None,
    **fields: Any,
) -> Bean:
    """Add a bean to the inventory.

    Args:
        name: Coffee name
        roaster: Roaster name
        weight: Bag weight in grams
        roast_date: Defaults to now
        purchase_date: Defaults to now
        **fields: Any other ``Bean`` field (origin, roast_level, price, ...)

    Returns:
        The stored bean.
    """
    now = utc_now()
    bean = Bean(
        name=name,
        roaster=roaster,
        weight=weight,
        roast_date=roast_date or now,
        purchase_date=purchase_date or now,
        created_at=now,
        updated_at=now,
        **fields,
    )
    with storage_errors("create bean"):
        await bean.insert()
    logger.info("Created bean %s (%s)", bean.id, bean.display_name)
    return bean


async def get_bean(bean_id: str) -> Bean:
    with storage_errors("load bean"):
        bean = await Bean.get(bean_id)
    if bean is None:
        raise BeanNotFoundError(bean_id)
    return bean


async def update_bean(bean_id: str, data: dict[str, Any]) -> Bean:
    """Apply edits to a bean. Unknown field names are ignored."""
    bean = await get_bean(bean_id)
    return await apply_changes(bean, data, EDITABLE_FIELDS, "update bean")


async def _set_archived(bean_id: str, archived: bool) -> Bean:
    bean = await get_bean(bean_id)
    bean.is_archived = archived
    bean.updated_at = utc_now()
    with storage_errors("archive bean"):
        await bean.save()
    return bean


async def archive_bean(bean_id: str) -> Bean:
    return await _set_archived(bean_id, True)


async def unarchive_bean(bean_id: str) -> Bean:
    return await _set_archived(bean_id, False)


async def next_batch_number(name: str, roaster: str) -> int:
    """One more than the highest batch number among beans with this name and roaster."""
    with storage_errors("load batches"):
        batches = await Bean.find({"name": name, "roaster": roaster}).to_list()
    return max((b.batch_number for b in batches), default=0) + 1


async def create_batch_from_bean(
    bean_id: str,
    *,
    weight: float,
    roast_date: datetime,
    purchase_date: Optional[datetime] = None,
    price: Optional[float] = None,
) -> Bean:
    """Start a new bag of a bean already in the inventory.

    The source bean is left unchanged. The new bean copies its descriptive
    fields, takes the given weight, dates and price (defaulting to the
    source bean's price) and gets the next batch number for its name and
    roaster.
    """
    source = await get_bean(bean_id)
    now = utc_now()
    bean = Bean(
        **{field: getattr(source, field) for field in BATCH_COPIED_FIELDS},
        weight=weight,
        roast_date=roast_date,
        purchase_date=purchase_date or now,
        price=source.price if price is None else price,
        batch_number=await next_batch_number(source.name, source.roaster),
        created_at=now,
        updated_at=now,
    )
    with storage_errors("create batch"):
        await bean.insert()
    logger.info("Created batch #%d of %s", bean.batch_number, bean.display_name)
    return bean


async def delete_bean(bean_id: str, image_storage: Optional[ImageStorageService] = None) -> int:
    """Delete a bean, clearing the reference on its sessions.

    Returns:
        Number of sessions that were unlinked.
    """
    bean = await get_bean(bean_id)
    with storage_errors("delete bean"):
        unlinked = await BrewingSession.find({"bean_id": bean.id}).count()
        await BrewingSession.find({"bean_id": bean.id}).update({"$set": {"bean_id": None}})
        await bean.delete()
    if bean.image_path and image_storage is not None:
        await image_storage.delete_image(bean.image_path)
    logger.info("Deleted bean %s, unlinked %d sessions", bean.id, unlinked)
    return unlinked


async def bean_sessions(bean_id: str) -> list[BrewingSession]:
    with storage_errors("load sessions"):
        return await BrewingSession.find({"bean_id": bean_id}).sort("-start_time").to_list()


async def remaining_weights(beans: list[Bean]) -> dict[str, float]:
    """Remaining grams per bean id, from the doses of linked sessions."""
    ids = [b.id for b in beans]
    with storage_errors("load sessions"):
        sessions = await BrewingSession.find({"bean_id": {"$in": ids}}).to_list()
    used: dict[str, list[float]] = {}
    for s in sessions:
        used.setdefault(s.bean_id, []).append(s.dose_in)
    return {b.id: metrics.stock_status(b.weight, used.get(b.id, [])).remaining for b in beans}


async def list_beans(
    *,
    archived: Optional[bool] = False,
    search: Optional[str] = None,
    sort: BeanSort = BeanSort.NAME,
) -> list[Bean]:
    """List beans.

    Args:
        archived: Only archived (True), only active (False) or all (None).
        search: Case-insensitive text matched against name, roaster, origin
            and tasting notes.
        sort: Ordering; freshness puts the most recently roasted first and
            remaining puts the fullest bag first.
    """
    conditions: dict[str, Any] = {}
    if archived is not None:
        conditions["is_archived"] = archived
    if search:
        pattern = re.compile(re.escape(search), re.IGNORECASE)
        conditions["$or"] = [
            {"name": {"$regex": pattern}},
            {"roaster": {"$regex": pattern}},
            {"origin": {"$regex": pattern}},
            {"tasting_notes": {"$regex": pattern}},
        ]

    with storage_errors("list beans"):
        beans = await Bean.find(conditions).to_list()

    sort = BeanSort(sort)
    if sort == BeanSort.NAME:
        beans.sort(key=lambda b: (b.name.lower(), b.batch_number))
    elif sort == BeanSort.ROASTER:
        beans.sort(key=lambda b: (b.roaster.lower(), b.name.lower()))
    elif sort == BeanSort.FRESHNESS:
        beans.sort(key=lambda b: b.roast_date, reverse=True)
    elif sort == BeanSort.CREATED:
        beans.sort(key=lambda b: b.created_at, reverse=True)
    else:
        remaining = await remaining_weights(beans)
        beans.sort(key=lambda b: remaining[b.id], reverse=True)
    return beans


async def bean_summary(
    bean_id: str,
    now: Optional[datetime] = None,
    config: MetricsConfig = metrics.DEFAULT_METRICS,
) -> metrics.BeanSummary:
    """Freshness and stock for one bean."""
    bean = await get_bean(bean_id)
    sessions = await bean_sessions(bean_id)
    return metrics.summarize_bean(bean, sessions, now, config)
