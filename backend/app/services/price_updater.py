"""Price Simulator / Updater"""
import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.errors import StoreError
from app.models.product import Product
from app.models.search import Search, SearchStatus
from app.services.price_drop_service import PriceDropService, SearchCheckResult
from app.services.pricing import draw_change_percent, simulate_price_change
from app.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass
class ProductUpdateError:
    asin: str
    error: str


@dataclass
class SearchCheckOutcome:
    search_id: str
    result: Optional[SearchCheckResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class UpdateResult:
    products_processed: int = 0
    snapshots_created: int = 0
    errors: List[ProductUpdateError] = field(default_factory=list)
    search_checks: List[SearchCheckOutcome] = field(default_factory=list)

    @property
    def tracked_searches_checked(self) -> int:
        return len(self.search_checks)


class PriceUpdater:
    """
    Advance every priced product by one simulated tick.

    Stands in for a real re-scrape: each product gets a new price within
    +/- max_change percent of its current one, a snapshot, and a refreshed
    cached price. Each product is its own transaction; failures are recorded
    per product and never abort the batch. Afterwards every tracked, Done
    search gets an independent price drop check.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        store_factory: Callable[[AsyncSession], SnapshotStore] = SnapshotStore,
        rng: Optional[random.Random] = None,
        batch_size: Optional[int] = None,
        max_change_percent: Optional[float] = None,
        concurrency: Optional[int] = None,
        check_concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.store_factory = store_factory
        self.rng = rng or random.Random()
        self.batch_size = batch_size or settings.SIMULATION_BATCH_SIZE
        self.max_change_percent = (
            settings.SIMULATION_MAX_CHANGE_PERCENT if max_change_percent is None else max_change_percent
        )
        self.concurrency = concurrency or settings.UPDATER_CONCURRENCY
        self.check_concurrency = check_concurrency or settings.CHECK_CONCURRENCY
        self.timeout = timeout or settings.STORE_TIMEOUT_SECONDS

    async def run(self) -> UpdateResult:
        products = await self._eligible_products()
        result = UpdateResult(products_processed=len(products))

        if products:
            logger.info("Simulating price updates for %d products", len(products))
            errors = await self._update_products(products)
            result.errors = [e for e in errors if e is not None]
            result.snapshots_created = len(products) - len(result.errors)
        else:
            logger.info("No products with prices found")

        search_ids = await self._tracked_search_ids()
        if search_ids:
            logger.info("Checking price drops for %d tracked searches", len(search_ids))
            result.search_checks = await check_searches(
                self.session_factory,
                search_ids,
                store_factory=self.store_factory,
                concurrency=self.check_concurrency,
                timeout=self.timeout,
            )

        logger.info(
            "Price simulation completed: %d processed, %d snapshots, %d errors, %d searches checked",
            result.products_processed, result.snapshots_created,
            len(result.errors), result.tracked_searches_checked,
        )
        return result

    async def _eligible_products(self) -> List[Tuple[str, Decimal]]:
        # Least recently updated first so repeated runs cover the whole catalog
        async with self.session_factory() as db:
            result = await db.execute(
                select(Product.asin, Product.final_price)
                .where(Product.final_price.isnot(None))
                .order_by(Product.updated_at, Product.asin)
                .limit(self.batch_size)
            )
            return [(row.asin, row.final_price) for row in result.all()]

    async def _tracked_search_ids(self) -> List[str]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Search.id)
                .where(Search.is_tracked == True, Search.status == SearchStatus.DONE.value)
                .order_by(Search.created_at, Search.id)
            )
            return list(result.scalars().all())

    async def _update_products(self, products: Sequence[Tuple[str, Decimal]]) -> List[Optional[ProductUpdateError]]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(asin: str, price: Decimal) -> Optional[ProductUpdateError]:
            async with semaphore:
                try:
                    await asyncio.wait_for(self.update_product(asin, price), self.timeout)
                except asyncio.TimeoutError:
                    logger.warning("Price update for %s timed out after %ss", asin, self.timeout)
                    return ProductUpdateError(asin=asin, error=f"timed out after {self.timeout}s")
                except Exception as exc:
                    logger.error("Price update for %s failed: %s", asin, exc, exc_info=True)
                    return ProductUpdateError(asin=asin, error=str(exc) or type(exc).__name__)
                return None

        return await asyncio.gather(*(guarded(asin, price) for asin, price in products))

    async def update_product(self, asin: str, current_price: Decimal) -> Decimal:
        """Append one simulated snapshot and refresh the cached price, atomically."""
        change = draw_change_percent(self.max_change_percent, self.rng)
        new_price = simulate_price_change(current_price, change)

        async with self.session_factory() as db:
            try:
                store = self.store_factory(db)
                await store.append_snapshot(asin, new_price)
                product = await db.get(Product, asin)
                product.final_price = new_price
                product.updated_at = datetime.now(timezone.utc)
                await db.commit()
            except SQLAlchemyError as exc:
                await db.rollback()
                raise StoreError(f"Could not record price for {asin}: {exc}") from exc

        logger.debug("%s: %s -> %s (%+.2f%%)", asin, current_price, new_price, change)
        return new_price


async def check_searches(
    session_factory: async_sessionmaker,
    search_ids: Sequence[str],
    store_factory: Callable[[AsyncSession], SnapshotStore] = SnapshotStore,
    concurrency: Optional[int] = None,
    timeout: Optional[float] = None,
) -> List[SearchCheckOutcome]:
    """
    Run a price drop check per search, each in its own session.

    All-settled: a slow or failing search is recorded in its outcome and
    never affects the others.
    """
    semaphore = asyncio.Semaphore(concurrency or settings.CHECK_CONCURRENCY)
    timeout = timeout or settings.STORE_TIMEOUT_SECONDS

    async def check_one(search_id: str) -> SearchCheckResult:
        async with session_factory() as db:
            service = PriceDropService(db, store_factory(db))
            return await service.check_search(search_id)

    async def guarded(search_id: str) -> SearchCheckOutcome:
        async with semaphore:
            try:
                result = await asyncio.wait_for(check_one(search_id), timeout)
            except asyncio.TimeoutError:
                logger.warning("Price drop check for search %s timed out", search_id)
                return SearchCheckOutcome(search_id=search_id, error=f"timed out after {timeout}s")
            except Exception as exc:
                logger.error("Price drop check for search %s failed: %s", search_id, exc, exc_info=True)
                return SearchCheckOutcome(search_id=search_id, error=str(exc) or type(exc).__name__)
        logger.debug("Price drop check completed for search %s: %s", search_id, result)
        return SearchCheckOutcome(search_id=search_id, result=result)

    return list(await asyncio.gather(*(guarded(sid) for sid in search_ids)))
