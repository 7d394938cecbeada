"""Drop Detector - compare the two latest snapshots of each product in a search"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import SearchNotFoundError
from app.models.product import Product
from app.models.search import Search, ProductSearch
from app.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

SKIPPED_NOT_TRACKED = "not_tracked"


@dataclass
class PriceDrop:
    asin: str
    name: str
    url: Optional[str]
    old_price: Decimal
    new_price: Decimal


@dataclass
class DetectionResult:
    search: Search
    skipped: bool = False
    reason: Optional[str] = None
    products_checked: int = 0
    drops: List[PriceDrop] = field(default_factory=list)


def classify(snapshots) -> str:
    """
    Classify the newest-first snapshot pair as 'drop', 'flat', 'increase'
    or 'insufficient' when fewer than two points exist.
    """
    if len(snapshots) != 2:
        return "insufficient"
    newest, previous = snapshots[0].final_price, snapshots[1].final_price
    if newest < previous:
        return "drop"
    if newest > previous:
        return "increase"
    return "flat"


class DropDetector:
    """
    Read-only price drop detection for one search.

    The tracked flag is read at call time; an untracked search is a defined
    skip, not an error.
    """

    def __init__(self, db: AsyncSession, store: Optional[SnapshotStore] = None):
        self.db = db
        self.store = store or SnapshotStore(db)

    async def detect(self, search_id: str) -> DetectionResult:
        search = await self._load_search(search_id)

        if not search.is_tracked:
            logger.info("Search %s is not tracked, skipping price drop check", search_id)
            return DetectionResult(search=search, skipped=True, reason=SKIPPED_NOT_TRACKED)

        products = await self._linked_products(search_id)
        result = DetectionResult(search=search, products_checked=len(products))

        for product in products:
            snapshots = await self.store.latest_two(product.asin)
            if classify(snapshots) != "drop":
                continue
            result.drops.append(PriceDrop(
                asin=product.asin,
                name=product.name,
                url=product.url,
                old_price=snapshots[1].final_price,
                new_price=snapshots[0].final_price,
            ))

        logger.debug(
            "Search %s: %d price drops across %d linked products",
            search_id, len(result.drops), len(products),
        )
        return result

    async def _load_search(self, search_id: str) -> Search:
        # populate_existing so a flag toggled by another session is seen
        result = await self.db.execute(
            select(Search)
            .where(Search.id == search_id)
            .execution_options(populate_existing=True)
        )
        search = result.scalar_one_or_none()
        if search is None:
            raise SearchNotFoundError(search_id)
        return search

    async def _linked_products(self, search_id: str) -> List[Product]:
        result = await self.db.execute(
            select(Product)
            .join(ProductSearch, ProductSearch.asin == Product.asin)
            .where(ProductSearch.search_id == search_id)
            .order_by(Product.asin)
        )
        return list(result.scalars().all())
