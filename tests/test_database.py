"""Tests for database setup."""

import pytest
from mongomock_motor import AsyncMongoMockClient
from pymongo.errors import PyMongoError

from espressobox import database
from espressobox.models import Bean
from espressobox.services.exceptions import PersistenceError


async def test_init_db_binds_models():
    client = AsyncMongoMockClient()
    db = await database.init_db(mongodb_database="setup_test", motor_client=client)
    try:
        assert database.get_database() is db
        assert db.name == "setup_test"
        await Bean(name="Bound").insert()
        assert await Bean.find_all().count() == 1
    finally:
        await database.close_db()


async def test_get_database_before_init():
    await database.close_db()
    with pytest.raises(RuntimeError, match="init_db"):
        database.get_database()


def test_default_database_name_from_settings(monkeypatch):
    monkeypatch.setenv("ESPRESSOBOX_MONGODB_DATABASE", "diary_test")
    from espressobox.config.settings import reset_settings, settings

    reset_settings()
    assert settings.mongodb_database == "diary_test"


async def test_init_db_failure_becomes_persistence_error(monkeypatch):
    async def failing_init_beanie(**kwargs):
        raise PyMongoError("index build failed")

    monkeypatch.setattr(database, "init_beanie", failing_init_beanie)
    try:
        with pytest.raises(PersistenceError, match="connect to database: index build failed"):
            await database.init_db(mongodb_database="setup_test", motor_client=AsyncMongoMockClient())
    finally:
        await database.close_db()
