# tests/test_ingestion.py

"""Tests for scrape completion, catalog seeding and startup seed."""

import json
from decimal import Decimal

import pytest

from app.core.errors import ConfigurationError, SearchNotFoundError
from app.models import Product, ProductSearch, ProductSnapshot, Search, SearchStatus
from app.services.ingestion_service import IngestionService, valid_records
from app.services.seed_service import seed_data


RECORDS = [
    {"asin": "R1", "name": "Echo Dot", "brand": "Amazon", "final_price": "49.99", "url": "https://www.amazon.com/dp/R1"},
    {"asin": "R2", "name": "Fire TV Stick", "final_price": 39.99},
    {"asin": "R3", "name": "No price"},
    {"name": "missing asin", "final_price": 5},
    {"asin": "R4"},
]


def test_valid_records_drops_incomplete() -> None:
    assert [p.asin for p in valid_records(RECORDS)] == ["R1", "R2", "R3"]
    assert valid_records(None) == []


class TestCompleteScrape:
    async def test_saves_products_snapshots_and_marks_done(self, db, make) -> None:
        search = await make.search(status=SearchStatus.SCRAPING)

        result = await IngestionService(db).complete_scrape(search.id, RECORDS)

        assert (result.products_saved, result.snapshots_created, result.linked) == (3, 2, 3)
        assert await make.count(ProductSnapshot) == 2
        assert await make.count(ProductSearch) == 3
        refreshed = await db.get(Search, search.id)
        assert refreshed.status == SearchStatus.DONE.value
        assert refreshed.last_scraped_at is not None

    async def test_empty_result_still_marks_done(self, db, make) -> None:
        search = await make.search(status=SearchStatus.SCRAPING)

        result = await IngestionService(db).complete_scrape(search.id, [])

        assert result.products_saved == 0
        assert (await db.get(Search, search.id)).status == SearchStatus.DONE.value

    async def test_rescrape_updates_price_and_appends_history(self, db, make, session_factory) -> None:
        search = await make.search(status=SearchStatus.SCRAPING)
        service = IngestionService(db)
        await service.complete_scrape(search.id, [{"asin": "R1", "name": "Echo Dot", "final_price": 49.99}])
        await service.complete_scrape(search.id, [{"asin": "R1", "name": "Echo Dot (5th Gen)", "final_price": 44.99}])

        async with session_factory() as fresh:
            product = await fresh.get(Product, "R1")
        assert product.name == "Echo Dot (5th Gen)"
        assert product.final_price == Decimal("44.99")
        assert await make.count(ProductSnapshot) == 2
        assert await make.count(ProductSearch) == 1

    async def test_missing_price_keeps_cached_price(self, db, make, session_factory) -> None:
        await make.product("R1", price="49.99")
        search = await make.search(status=SearchStatus.SCRAPING)

        result = await IngestionService(db).complete_scrape(search.id, [{"asin": "R1", "name": "Echo Dot"}])

        assert result.snapshots_created == 0
        async with session_factory() as fresh:
            product = await fresh.get(Product, "R1")
        assert product.final_price == Decimal("49.99")

    async def test_unknown_search(self, db) -> None:
        with pytest.raises(SearchNotFoundError):
            await IngestionService(db).complete_scrape("missing", RECORDS)


class TestSeedProducts:
    async def test_seed_without_search(self, db, make) -> None:
        result = await IngestionService(db).seed_products(RECORDS)

        assert (result.products_saved, result.snapshots_created, result.linked) == (3, 2, 0)
        assert await make.count(Product) == 3
        assert await make.count(ProductSearch) == 0

    async def test_seed_links_to_search(self, db, make) -> None:
        search = await make.search()

        result = await IngestionService(db).seed_products(RECORDS[:2], search_id=search.id)

        assert result.linked == 2
        assert await make.count(ProductSearch) == 2


class TestSeedData:
    async def test_seeds_bundled_catalog_once(self, session_factory, make) -> None:
        first = await seed_data(session_factory)
        second = await seed_data(session_factory)

        assert first > 0
        assert second == 0
        assert await make.count(Product) == first
        assert await make.count(ProductSnapshot) == first

    async def test_custom_catalog(self, session_factory, make, tmp_path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([{"asin": "C1", "name": "Thing", "final_price": 3.5}]))

        assert await seed_data(session_factory, catalog_path=path) == 1

    async def test_unreadable_catalog(self, session_factory, tmp_path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            await seed_data(session_factory, catalog_path=path)
