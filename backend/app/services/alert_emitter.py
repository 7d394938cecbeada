"""Alert Deduper & Emitter"""
import logging
import uuid
from typing import Iterable, List, Set

from sqlalchemy import false, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import dialect_insert
from app.models.alert import PriceDropAlert
from app.models.search import Search
from app.services.drop_detector import PriceDrop
from app.services.pricing import drop_amount, drop_percent

logger = logging.getLogger(__name__)


class AlertEmitter:
    """
    Turns detected drops into alerts.

    Dedup rule: at most one unread alert per (search, product). Once the
    user marks it read the pair can alert again on the next drop. The unread
    pre-filter is a fast path; the partial unique index on price_drop_alerts
    settles concurrent checks of the same search.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def emit(self, search: Search, drops: Iterable[PriceDrop]) -> int:
        drops = list(drops)
        if not drops:
            return 0

        unread = await self.unread_asins(search.id)
        fresh = [d for d in drops if d.asin not in unread]
        suppressed = len(drops) - len(fresh)
        if suppressed:
            logger.debug("Search %s: %d drops already have unread alerts", search.id, suppressed)

        if not fresh:
            return 0

        rows = [self._build_alert(search, drop) for drop in fresh]
        stmt = (
            dialect_insert(self.db, PriceDropAlert)
            .values(rows)
            .on_conflict_do_nothing(
                index_elements=["search_id", "asin"],
                index_where=PriceDropAlert.is_read == false(),
            )
            .returning(PriceDropAlert.id)
        )
        created = len((await self.db.execute(stmt)).all())
        await self.db.commit()

        if created < len(rows):
            logger.info(
                "Search %s: %d alerts already written by a concurrent check",
                search.id, len(rows) - created,
            )
        logger.info("Created %d price drop alerts for search %s", created, search.id)
        return created

    async def unread_asins(self, search_id: str) -> Set[str]:
        result = await self.db.execute(
            select(PriceDropAlert.asin).where(
                PriceDropAlert.search_id == search_id,
                PriceDropAlert.is_read == False,
            )
        )
        return set(result.scalars().all())

    def _build_alert(self, search: Search, drop: PriceDrop) -> dict:
        if not drop.old_price > drop.new_price:
            raise ValueError(f"Not a price drop for {drop.asin}: {drop.old_price} -> {drop.new_price}")
        return {
            "id": str(uuid.uuid4()),
            "search_id": search.id,
            "asin": drop.asin,
            "product_name": drop.name,
            "product_url": drop.url,
            "old_price": drop.old_price,
            "new_price": drop.new_price,
            "price_drop_amount": drop_amount(drop.old_price, drop.new_price),
            "price_drop_percent": drop_percent(drop.old_price, drop.new_price),
            "is_read": False,
            "user_id": search.user_id,
        }


async def mark_read(db: AsyncSession, alert_id: str) -> PriceDropAlert | None:
    """Flip an alert to read. Alerts are never flipped back."""
    alert = await db.get(PriceDropAlert, alert_id)
    if alert is None:
        return None
    if not alert.is_read:
        alert.is_read = True
        await db.commit()
        await db.refresh(alert)
    return alert


async def list_alerts(db: AsyncSession, user_id: str, unread_only: bool = False, limit: int = 50) -> List[PriceDropAlert]:
    query = select(PriceDropAlert).where(PriceDropAlert.user_id == user_id)
    if unread_only:
        query = query.where(PriceDropAlert.is_read == False)
    result = await db.execute(query.order_by(PriceDropAlert.created_at.desc()).limit(limit))
    return list(result.scalars().all())
