# tests/test_linker.py

"""Tests for search to product matching and idempotent linking."""

import json
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.errors import SearchNotFoundError
from app.models import Product, ProductSearch, ProductSnapshot
from app.services.ingestion_service import IngestionService
from app.services.linker import SearchLinker, extract_terms, match_products
from app.services.product_lookup import CatalogProduct, FallbackLookup, PrimaryStoreLookup, StaticCatalogLookup, default_lookup
from app.services.snapshot_store import SnapshotStore


def _catalog(n: int) -> list[CatalogProduct]:
    return [CatalogProduct(asin=f"P{i:03d}", name=f"Widget {i}") for i in range(n)]


IPHONE = CatalogProduct(asin="B08L5NP6NG", name="Apple iPhone 12", brand="Apple")


class TestExtractTerms:
    def test_normalizes_and_splits(self) -> None:
        assert extract_terms("  Apple   IPHONE\tcase ") == ["apple", "iphone", "case"]

    def test_drops_short_terms(self) -> None:
        assert extract_terms("a tv x") == ["tv"]

    def test_empty(self) -> None:
        assert extract_terms("") == []
        assert extract_terms(None) == []


class TestMatchProducts:
    def test_empty_query_browses_first_50_in_catalog_order(self) -> None:
        catalog = _catalog(60)
        result = match_products("", catalog)
        assert result.browse is True
        assert [p.asin for p in result.products] == [f"P{i:03d}" for i in range(50)]

    def test_only_short_terms_is_browse(self) -> None:
        result = match_products("a b", _catalog(3))
        assert result.browse is True
        assert len(result.products) == 3

    def test_no_match_is_empty_not_browse(self) -> None:
        result = match_products("xyz", [IPHONE])
        assert result.browse is False
        assert result.products == []

    def test_case_insensitive_substring(self) -> None:
        result = match_products("iphone", [IPHONE])
        assert result.products == [IPHONE]

    def test_matches_brand_and_keyword(self) -> None:
        by_brand = CatalogProduct(asin="X1", name="Ear Buds", brand="Sony")
        by_keyword = CatalogProduct(asin="X2", name="Speaker", keyword="bluetooth audio")
        assert match_products("sony", [by_brand, by_keyword]).products == [by_brand]
        assert match_products("AUDIO", [by_brand, by_keyword]).products == [by_keyword]

    def test_any_term_matches(self) -> None:
        kindle = CatalogProduct(asin="K1", name="Kindle Paperwhite")
        result = match_products("iphone kindle", [IPHONE, kindle])
        assert [p.asin for p in result.products] == [IPHONE.asin, "K1"]

    def test_matches_capped_in_catalog_order(self) -> None:
        result = match_products("widget", _catalog(80), limit=50)
        assert len(result.products) == 50
        assert result.products[0].asin == "P000"
        assert result.products[-1].asin == "P049"


class TestSearchLinker:
    async def test_link_search_is_idempotent(self, db, make) -> None:
        await make.product("A1", name="Apple iPhone 12", brand="Apple")
        await make.product("A2", name="Galaxy S23", brand="Samsung")
        search = await make.search(query="iphone")

        linker = SearchLinker(db)
        first = await linker.link_search(search.id)
        second = await linker.link_search(search.id)

        assert first.matched == second.matched == 1
        rows = (await db.execute(select(ProductSearch))).scalars().all()
        assert [(r.asin, r.search_id) for r in rows] == [("A1", search.id)]

    async def test_link_products_skips_existing_pairs(self, db, make) -> None:
        await make.product("A1")
        await make.product("A2")
        search = await make.search(asins=("A1",))

        linked = await SearchLinker(db).link_products(search.id, ["A1", "A2", "A2"])

        assert linked == 2
        assert await make.count(ProductSearch) == 2

    async def test_empty_query_links_catalog_head(self, db, make) -> None:
        for i in range(3):
            await make.product(f"A{i}")
        search = await make.search(query="   ")

        result = await SearchLinker(db).link_search(search.id)

        assert result.browse is True
        assert result.linked == 3

    async def test_static_catalog_fallback_creates_products(self, db, make, tmp_path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([
            {"asin": "S1", "name": "Apple iPhone 12", "brand": "Apple", "final_price": 349.99},
            {"asin": "S2", "name": "Kindle"},
            {"name": "no asin"},
        ]))
        search = await make.search(query="iphone")
        lookup = FallbackLookup(PrimaryStoreLookup(db), StaticCatalogLookup(path))

        result = await SearchLinker(db, lookup).link_search(search.id)

        assert result.matched == 1
        product = await db.get(Product, "S1")
        assert product is not None
        assert product.name == "Apple iPhone 12"

        [snapshot] = await SnapshotStore(db).latest_two("S1")
        assert snapshot.final_price == product.final_price == Decimal("349.99")

    async def test_existing_products_get_no_extra_snapshot(self, db, make) -> None:
        await make.product("A1", name="Apple iPhone 12")
        search = await make.search(query="iphone")

        await SearchLinker(db).link_search(search.id)

        assert await make.count(ProductSnapshot) == 0

    async def test_browse_follows_ingest_order_not_asin_order(self, db, make) -> None:
        records = [{"asin": asin, "name": f"Item {asin}", "final_price": 5} for asin in ("Z9", "M5", "A1")]
        await IngestionService(db).seed_products(records)
        # re-ingesting a known product keeps its place
        await IngestionService(db).seed_products([{"asin": "Z9", "name": "Item Z9", "final_price": 4}])
        await IngestionService(db).seed_products([{"asin": "B2", "name": "Item B2"}])

        catalog = await default_lookup(db).catalog()

        assert [p.asin for p in catalog] == ["Z9", "M5", "A1", "B2"]
        browse = match_products("", catalog, limit=3)
        assert [p.asin for p in browse.products] == ["Z9", "M5", "A1"]

    async def test_unknown_search(self, db) -> None:
        with pytest.raises(SearchNotFoundError):
            await SearchLinker(db).link_search("missing")
