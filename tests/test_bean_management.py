"""Tests for bean inventory operations."""

from datetime import datetime, timedelta, timezone

import pytest

from espressobox.models import Bean, BrewingSession, RoastLevel
from espressobox.services.bean_management import (
    BeanSort,
    archive_bean,
    bean_sessions,
    bean_summary,
    create_batch_from_bean,
    create_bean,
    delete_bean,
    get_bean,
    list_beans,
    next_batch_number,
    remaining_weights,
    unarchive_bean,
    update_bean,
)
from espressobox.services.exceptions import BeanNotFoundError, InvalidDataError
from espressobox.services.image_storage import ImageStorageService
from espressobox.services.metrics import FreshnessLevel
from espressobox.services.session_management import create_session

NOW = datetime(2026, 10, 19, 8, 30, 0, tzinfo=timezone.utc)


class TestBeanModel:
    async def test_display_placeholders(self, init_test_db):
        bean = Bean()
        assert bean.display_name == "Unknown Bean"
        assert bean.display_roaster == "Unknown Roaster"
        assert bean.display_origin == "Unknown Origin"

    async def test_freshness_from_roast_date(self, init_test_db):
        bean = Bean(name="Test", roast_date=NOW - timedelta(days=10))
        assert bean.days_from_roast(NOW) == 10
        assert bean.freshness_level(NOW) == FreshnessLevel.FRESH


async def test_create_bean_defaults(init_test_db):
    bean = await create_bean(name="House Blend")
    stored = await get_bean(bean.id)
    assert stored.name == "House Blend"
    assert stored.batch_number == 1
    assert stored.is_archived is False
    assert stored.roast_level == RoastLevel.MEDIUM


async def test_get_missing_bean(init_test_db):
    with pytest.raises(BeanNotFoundError, match="Bean not found: nope"):
        await get_bean("nope")


async def test_update_bean_ignores_unknown_fields(sample_bean):
    bean = await update_bean(
        sample_bean.id,
        {"roast_level": "Dark", "price": 16.0, "batch_number": 9, "bogus": 1},
    )
    assert bean.roast_level == RoastLevel.DARK
    assert bean.price == 16.0
    assert bean.batch_number == 1

    stored = await get_bean(sample_bean.id)
    assert stored.roast_level == RoastLevel.DARK


async def test_update_bean_rejects_unknown_roast_level(sample_bean):
    with pytest.raises(InvalidDataError, match="update bean"):
        await update_bean(sample_bean.id, {"roast_level": "Charcoal"})
    assert (await get_bean(sample_bean.id)).roast_level == sample_bean.roast_level


async def test_archive_and_unarchive(sample_bean):
    await archive_bean(sample_bean.id)
    assert await list_beans() == []
    assert [b.id for b in await list_beans(archived=True)] == [sample_bean.id]

    await unarchive_bean(sample_bean.id)
    assert [b.id for b in await list_beans()] == [sample_bean.id]


class TestBatches:
    async def test_new_batch_copies_description(self, sample_bean):
        batch = await create_batch_from_bean(
            sample_bean.id,
            weight=500.0,
            roast_date=NOW - timedelta(days=2),
        )
        assert batch.id != sample_bean.id
        assert batch.batch_number == 2
        assert batch.name == sample_bean.name
        assert batch.roaster == sample_bean.roaster
        assert batch.tasting_notes == sample_bean.tasting_notes
        assert batch.weight == 500.0
        assert batch.price == sample_bean.price
        assert batch.is_archived is False

        source = await get_bean(sample_bean.id)
        assert source.weight == 250.0
        assert source.batch_number == 1

    async def test_batch_numbers_increase_from_highest(self, sample_bean):
        await create_batch_from_bean(sample_bean.id, weight=250, roast_date=NOW)
        third = await create_batch_from_bean(sample_bean.id, weight=250, roast_date=NOW, price=20.0)
        assert third.batch_number == 3
        assert third.price == 20.0
        assert await next_batch_number(sample_bean.name, sample_bean.roaster) == 4

    async def test_other_roaster_starts_at_one(self, sample_bean):
        assert await next_batch_number(sample_bean.name, "Someone Else") == 1


async def test_delete_bean_unlinks_sessions(sample_session, sample_bean):
    unlinked = await delete_bean(sample_bean.id)
    assert unlinked == 1

    session = await BrewingSession.get(sample_session.id)
    assert session is not None
    assert session.bean_id is None
    assert session.grinder_id == sample_session.grinder_id

    with pytest.raises(BeanNotFoundError):
        await get_bean(sample_bean.id)


async def test_delete_bean_removes_image(init_test_db, tmp_path):
    storage = ImageStorageService(tmp_path / "images")
    png = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
    filename = await storage.save_image(png, "bag.png")
    bean = await create_bean(name="Pictured", image_path=filename)

    await delete_bean(bean.id, image_storage=storage)
    assert not (tmp_path / "images" / filename).exists()


class TestListing:
    async def test_search_matches_several_fields(self, init_test_db):
        await create_bean(name="Ethiopia Guji", roaster="Square Mile", tasting_notes="Blueberry")
        await create_bean(name="Colombia Huila", roaster="Origin", origin="Colombia")
        await create_bean(name="House", roaster="Local", tasting_notes="Chocolate")

        assert [b.name for b in await list_beans(search="square")] == ["Ethiopia Guji"]
        assert [b.name for b in await list_beans(search="COLOMBIA")] == ["Colombia Huila"]
        assert [b.name for b in await list_beans(search="choc")] == ["House"]
        assert await list_beans(search="a.b") == []

    async def test_sort_orders(self, init_test_db):
        older = await create_bean(name="B", roaster="Zed", roast_date=NOW - timedelta(days=20), weight=1000)
        newer = await create_bean(name="a", roaster="Alpha", roast_date=NOW - timedelta(days=2), weight=100)

        assert [b.id for b in await list_beans(sort=BeanSort.NAME)] == [newer.id, older.id]
        assert [b.id for b in await list_beans(sort=BeanSort.ROASTER)] == [newer.id, older.id]
        assert [b.id for b in await list_beans(sort=BeanSort.FRESHNESS)] == [newer.id, older.id]
        assert [b.id for b in await list_beans(sort=BeanSort.REMAINING)] == [older.id, newer.id]

    async def test_remaining_sort_counts_doses(self, init_test_db):
        small = await create_bean(name="Small", weight=100)
        big = await create_bean(name="Big", weight=120)
        await create_session(dose_in=18, yield_out=36, brew_time=28, bean_id=big.id)
        await create_session(dose_in=18, yield_out=36, brew_time=28, bean_id=big.id)

        remaining = await remaining_weights([small, big])
        assert remaining == {small.id: 100.0, big.id: 84.0}
        assert [b.name for b in await list_beans(sort="remaining")] == ["Small", "Big"]

    async def test_list_all_includes_archived(self, sample_bean):
        await create_bean(name="Old", is_archived=True)
        assert len(await list_beans(archived=None)) == 2


async def test_bean_summary(sample_session, sample_bean):
    summary = await bean_summary(sample_bean.id, now=NOW)
    assert summary.days_from_roast == 10
    assert summary.freshness == FreshnessLevel.FRESH
    assert summary.session_count == 1
    assert summary.stock.remaining == 232.0
    assert not summary.stock.is_low_stock

    sessions = await bean_sessions(sample_bean.id)
    assert [s.id for s in sessions] == [sample_session.id]
