"""Seed service for initial data"""
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import select

from app.core.config import settings
from app.core.database import AsyncSessionLocal
from app.core.errors import ConfigurationError
from app.models.product import Product
from app.services.ingestion_service import IngestionService
from app.services.product_lookup import StaticCatalogLookup

logger = logging.getLogger(__name__)


async def seed_data(session_factory=AsyncSessionLocal, catalog_path: Optional[Path] = None) -> int:
    """Seed products (with initial snapshots) from the bundled catalog if empty"""
    path = Path(catalog_path or settings.CATALOG_PATH)

    async with session_factory() as db:
        # Check if already seeded
        result = await db.execute(select(Product.asin).limit(1))
        if result.scalar_one_or_none():
            return 0

        try:
            catalog = StaticCatalogLookup(path).load()
        except (OSError, ValueError) as exc:
            raise ConfigurationError(f"Catalog {path} is unreadable: {exc}") from exc

        records = [
            {
                "asin": p.asin,
                "name": p.name,
                "brand": p.brand,
                "keyword": p.keyword,
                "image": p.image,
                "url": p.url,
                "final_price": p.final_price,
                "currency": p.currency,
            }
            for p in catalog
        ]
        ingested = await IngestionService(db).seed_products(records)
        logger.info("Database seeded with %d catalog products", ingested.products_saved)
        return ingested.products_saved
