"""Per-search price drop check: detect, then emit deduplicated alerts"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.alert_emitter import AlertEmitter
from app.services.drop_detector import DropDetector
from app.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass
class SearchCheckResult:
    search_id: str
    skipped: bool = False
    reason: Optional[str] = None
    price_drops_count: int = 0
    alerts_created: int = 0


class PriceDropService:
    def __init__(self, db: AsyncSession, store: Optional[SnapshotStore] = None):
        self.detector = DropDetector(db, store)
        self.emitter = AlertEmitter(db)

    async def check_search(self, search_id: str) -> SearchCheckResult:
        detection = await self.detector.detect(search_id)
        if detection.skipped:
            return SearchCheckResult(search_id=search_id, skipped=True, reason=detection.reason)

        created = await self.emitter.emit(detection.search, detection.drops)
        return SearchCheckResult(
            search_id=search_id,
            price_drops_count=len(detection.drops),
            alerts_created=created,
        )
