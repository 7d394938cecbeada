"""Ingestion Service - vendor scrape results and catalog seeding"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import dialect_insert
from app.core.errors import SearchNotFoundError
from app.models.product import Product
from app.models.search import Search, SearchStatus
from app.services.linker import SearchLinker
from app.services.product_lookup import CatalogProduct, next_catalog_position
from app.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    products_saved: int
    snapshots_created: int
    linked: int = 0


def valid_records(records: Iterable) -> List[CatalogProduct]:
    """Records without an asin or name are dropped silently."""
    products = [CatalogProduct.from_record(r) for r in records or []]
    return [p for p in products if p is not None]


class IngestionService:
    """
    Writes raw product records into the pipeline.

    Products are upserted on asin, every priced record gets a snapshot and
    the product's cached price is refreshed to match it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = SnapshotStore(db)
        self.linker = SearchLinker(db)

    async def complete_scrape(self, search_id: str, records: Iterable) -> IngestResult:
        """Handle a finished vendor scrape for a search and mark it Done."""
        search = await self.db.get(Search, search_id)
        if search is None:
            raise SearchNotFoundError(search_id)

        products = valid_records(records)
        now = datetime.now(timezone.utc)

        if not products:
            logger.warning("No valid products in scrape result for search %s", search_id)

        snapshots = await self._upsert_products(products, now)
        linked = await self.linker.link_products(search_id, [p.asin for p in products], commit=False)

        search.status = SearchStatus.DONE.value
        search.last_scraped_at = now
        await self.db.commit()

        logger.info(
            "Scrape for search %s saved %d products, %d snapshots; search marked Done",
            search_id, len(products), snapshots,
        )
        return IngestResult(products_saved=len(products), snapshots_created=snapshots, linked=linked)

    async def seed_products(self, records: Iterable, search_id: Optional[str] = None) -> IngestResult:
        """
        Bulk-load catalog records. Linking is best effort: a failed link
        is logged and the seeded products are kept.
        """
        products = valid_records(records)
        now = datetime.now(timezone.utc)

        snapshots = await self._upsert_products(products, now)
        await self.db.commit()
        logger.info("Seeded %d products with %d initial snapshots", len(products), snapshots)

        linked = 0
        if search_id and products:
            try:
                linked = await self.linker.link_products(search_id, [p.asin for p in products])
            except SQLAlchemyError:
                await self.db.rollback()
                logger.error("Linking seeded products to search %s failed", search_id, exc_info=True)

        return IngestResult(products_saved=len(products), snapshots_created=snapshots, linked=linked)

    async def _upsert_products(self, products: List[CatalogProduct], now: datetime) -> int:
        if not products:
            return 0

        # Last record wins when a payload repeats an asin
        by_asin = {p.asin: p for p in products}
        start = await next_catalog_position(self.db)
        rows = [
            {
                "asin": p.asin,
                "name": p.name,
                "image": p.image,
                "url": p.url,
                "brand": p.brand,
                "keyword": p.keyword,
                "final_price": p.final_price,
                "currency": p.currency,
                "catalog_position": start + i,
                "updated_at": now,
            }
            for i, p in enumerate(by_asin.values())
        ]
        stmt = dialect_insert(self.db, Product).values(rows)
        # A record without a price keeps the cached one; a known product keeps its position
        stmt = stmt.on_conflict_do_update(
            index_elements=["asin"],
            set_={
                "name": stmt.excluded.name,
                "image": stmt.excluded.image,
                "url": stmt.excluded.url,
                "final_price": func.coalesce(stmt.excluded.final_price, Product.final_price),
                "currency": stmt.excluded.currency,
                "catalog_position": func.coalesce(Product.catalog_position, stmt.excluded.catalog_position),
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.db.execute(stmt)

        snapshots = 0
        for product in by_asin.values():
            if product.final_price is None:
                continue
            await self.store.append_snapshot(product.asin, product.final_price, created_at=now)
            snapshots += 1
        return snapshots
