"""Snapshot Store - append-only product price ledger"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.snapshot import ProductSnapshot
from app.services.pricing import quantize_price

logger = logging.getLogger(__name__)


class SnapshotStore:
    """
    Append-only access to product price snapshots.

    Snapshots are immutable once written; this class exposes no update or
    delete. Ordering is by creation time, ties broken by id (newest id wins),
    so "latest" is always well-defined.

    Writes are flushed, not committed: the caller owns the transaction so a
    snapshot and the product's cached price land together.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append_snapshot(
        self,
        asin: str,
        price: Decimal,
        created_at: Optional[datetime] = None,
    ) -> ProductSnapshot:
        """Record a price observation. Repeated prices are valid history."""
        snapshot = ProductSnapshot(
            asin=asin,
            final_price=quantize_price(price),
            created_at=created_at or datetime.now(timezone.utc),
        )
        self.db.add(snapshot)
        await self.db.flush()
        return snapshot

    async def latest_two(self, asin: str) -> List[ProductSnapshot]:
        """Return up to two snapshots for a product, newest first."""
        return await self.history(asin, limit=2)

    async def history(self, asin: str, limit: int = 100, offset: int = 0) -> List[ProductSnapshot]:
        result = await self.db.execute(
            select(ProductSnapshot)
            .where(ProductSnapshot.asin == asin)
            .order_by(ProductSnapshot.created_at.desc(), ProductSnapshot.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())
