"""Shared field types for EspressoBox documents."""

import uuid
from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator

from espressobox.services.metrics import ensure_utc


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a document identifier (UUID4 string)."""
    return str(uuid.uuid4())


# MongoDB hands back naive datetimes unless the client is tz-aware
UTCDatetime = Annotated[datetime, AfterValidator(ensure_utc)]
