"""MongoDB connection and Beanie initialization.

The diary keeps one Motor client per process. ``init_db`` binds every
document model to the configured database; commands call ``close_db`` when
they finish.
"""

import logging
from typing import TYPE_CHECKING

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from espressobox.config import settings
from espressobox.services.persistence import storage_errors

if TYPE_CHECKING:
    from beanie import Document

logger = logging.getLogger(__name__)

client: AsyncIOMotorClient | None = None
database: AsyncIOMotorDatabase | None = None


def get_document_models() -> list[type["Document"]]:
    """Every Beanie document the diary stores."""
    from espressobox.models import (
        Bean,
        BrewingSession,
        BrewMethodProfile,
        Grinder,
        ImportBatch,
        Machine,
    )

    return [Bean, Grinder, Machine, BrewingSession, BrewMethodProfile, ImportBatch]


async def init_db(
    mongodb_url: str | None = None,
    mongodb_database: str | None = None,
    motor_client: AsyncIOMotorClient | None = None,
) -> AsyncIOMotorDatabase:
    """Connect and register the document models.

    Args:
        mongodb_url: Connection URL; defaults to ``[database] mongodb_url``.
        mongodb_database: Database name; defaults to ``[database] mongodb_database``.
        motor_client: Ready-made client, e.g. an in-memory one in tests.
            ``mongodb_url`` is ignored when it is given.

    Raises:
        PersistenceError: The connection or index setup failed.
    """
    global client, database

    with storage_errors("connect to database"):
        if motor_client is None:
            # tz_aware so stored datetimes come back as aware UTC
            motor_client = AsyncIOMotorClient(
                mongodb_url or settings.mongodb_url,
                tz_aware=True,
                minPoolSize=settings.min_pool_size,
                maxPoolSize=settings.max_pool_size,
            )
        client = motor_client

        name = mongodb_database or settings.mongodb_database
        database = client[name]
        await init_beanie(database=database, document_models=get_document_models())
    logger.debug("Connected to database %s", name)
    return database


async def close_db() -> None:
    global client, database

    if client is None:
        return
    client.close()
    client = None
    database = None


def get_database() -> AsyncIOMotorDatabase:
    """The database bound by ``init_db``.

    Raises:
        RuntimeError: ``init_db`` has not been called.
    """
    if database is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return database
