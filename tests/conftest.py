"""Pytest configuration and fixtures for EspressoBox tests.

Database-backed tests run against mongomock-motor, one fresh in-memory
database per test, so no MongoDB server is needed.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from beanie import init_beanie
from mongomock_motor import AsyncMongoMockClient

from espressobox.config.settings import reset_settings
from espressobox.database import get_document_models

# Fixed clock for date-dependent assertions; no microseconds so values
# survive a round trip through BSON unchanged
NOW = datetime(2026, 10, 19, 8, 30, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point settings at a temp data dir and keep real config files out."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ESPRESSOBOX_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setattr(
        "espressobox.config.loader.get_config_search_paths",
        lambda: [tmp_path / "config.toml"],
    )
    reset_settings()
    yield
    reset_settings()


@pytest_asyncio.fixture(scope="function")
async def mongo_client():
    """Create an in-memory MongoDB client for testing."""
    client = AsyncMongoMockClient()
    yield client


@pytest_asyncio.fixture(scope="function")
async def init_test_db(mongo_client):
    """Initialize Beanie with a unique test database."""
    db_name = f"test_espressobox_{uuid.uuid4().hex[:8]}"
    db = mongo_client[db_name]

    await init_beanie(
        database=db,
        document_models=get_document_models(),
    )
    yield db


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest_asyncio.fixture
async def sample_bean(init_test_db):
    """A 250g bag roasted ten days before NOW."""
    from espressobox.services.bean_management import create_bean

    return await create_bean(
        name="Ethiopia Guji",
        roaster="Square Mile",
        origin="Ethiopia",
        tasting_notes="Blueberry, jasmine",
        price=14.5,
        weight=250.0,
        roast_date=NOW - timedelta(days=10),
        purchase_date=NOW - timedelta(days=8),
    )


@pytest_asyncio.fixture
async def sample_grinder(init_test_db):
    from espressobox.services.equipment_management import create_grinder

    return await create_grinder(name="Niche Zero", brand="Niche", burr_type="Conical", burr_size=63)


@pytest_asyncio.fixture
async def sample_machine(init_test_db):
    from espressobox.services.equipment_management import create_machine

    return await create_machine(
        name="Linea Micra",
        brand="La Marzocco",
        model="Micra",
        boiler_type="Dual",
        group_head_type="Saturated",
        pressure_bar=9.0,
    )


@pytest_asyncio.fixture
async def sample_session(sample_bean, sample_grinder, sample_machine):
    """An on-target shot brewed from all three sample references."""
    from espressobox.services.session_management import create_session

    return await create_session(
        dose_in=18.0,
        yield_out=36.0,
        brew_time=27.0,
        start_time=NOW - timedelta(days=1),
        bean_id=sample_bean.id,
        grinder_id=sample_grinder.id,
        machine_id=sample_machine.id,
        grind_setting="12",
        rating=4,
        acidity=4,
        sweetness=4,
        puck_prep_wdt=True,
        notes="Sweet and bright",
    )
