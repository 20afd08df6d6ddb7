"""Shared handling of storage failures and edits."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from beanie import Document
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from espressobox.models.base import utc_now
from espressobox.services.exceptions import InvalidDataError, PersistenceError

logger = logging.getLogger(__name__)

DocumentT = TypeVar("DocumentT", bound=Document)


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Translate driver errors raised inside the block into ``PersistenceError``."""
    try:
        yield
    except PyMongoError as e:
        logger.error("Failed to %s: %s", action, e)
        raise PersistenceError(f"Failed to {action}: {e}") from e


async def apply_changes(
    document: DocumentT,
    data: dict[str, Any],
    editable: set[str],
    action: str,
) -> DocumentT:
    """Revalidate and save the editable fields present in ``data``.

    Unknown field names are ignored. The document is left untouched when
    the edited values fail validation.

    Raises:
        InvalidDataError: An edited value is not valid for the model.
        PersistenceError: The save failed.
    """
    changes = {k: v for k, v in data.items() if k in editable}
    if not changes:
        return document
    try:
        # Revalidate through the model so enums and dates are coerced
        updated = type(document).model_validate({**document.model_dump(), **changes, "updated_at": utc_now()})
    except ValidationError as e:
        raise InvalidDataError(f"Cannot {action}: {e}") from e
    for field in (*changes, "updated_at"):
        setattr(document, field, getattr(updated, field))
    with storage_errors(action):
        await document.save()
    return document
