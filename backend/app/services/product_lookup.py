"""Product lookup - database first, bundled catalog file as fallback"""
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.product import Product
from app.services.pricing import parse_price

logger = logging.getLogger(__name__)


@dataclass
class CatalogProduct:
    """Source-independent view of a catalog entry"""
    asin: str
    name: str
    brand: Optional[str] = None
    keyword: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None
    final_price: Optional[Decimal] = None
    currency: str = "USD"

    @classmethod
    def from_model(cls, product: Product) -> "CatalogProduct":
        return cls(
            asin=product.asin,
            name=product.name,
            brand=product.brand,
            keyword=product.keyword,
            image=product.image,
            url=product.url,
            final_price=product.final_price,
            currency=product.currency or "USD",
        )

    @classmethod
    def from_record(cls, record: dict) -> Optional["CatalogProduct"]:
        """Build from a raw vendor/catalog dict; None if asin or name is missing."""
        if not isinstance(record, dict) or not record.get("asin") or not record.get("name"):
            return None
        return cls(
            asin=str(record["asin"]),
            name=str(record["name"]),
            brand=record.get("brand") or None,
            keyword=record.get("keyword") or None,
            image=record.get("image") or None,
            url=record.get("url") or None,
            final_price=parse_price(record.get("final_price")),
            currency=record.get("currency") or "USD",
        )


class ProductLookup(Protocol):
    async def get(self, asin: str) -> Optional[CatalogProduct]:
        ...

    async def catalog(self) -> List[CatalogProduct]:
        ...


class PrimaryStoreLookup:
    """Products table lookup. Catalog order is insertion order (catalog_position)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, asin: str) -> Optional[CatalogProduct]:
        product = await self.db.get(Product, asin)
        return CatalogProduct.from_model(product) if product else None

    async def catalog(self) -> List[CatalogProduct]:
        result = await self.db.execute(
            select(Product).order_by(Product.catalog_position.asc().nulls_last(), Product.asin)
        )
        return [CatalogProduct.from_model(p) for p in result.scalars().all()]


class StaticCatalogLookup:
    """Read-only lookup over a JSON array of product records."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._products: Optional[List[CatalogProduct]] = None

    def load(self) -> List[CatalogProduct]:
        if self._products is None:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError(f"{self.path} does not contain a JSON array")
            products = [CatalogProduct.from_record(row) for row in data]
            self._products = [p for p in products if p is not None]
            logger.debug("Loaded %d catalog products from %s", len(self._products), self.path)
        return self._products

    async def get(self, asin: str) -> Optional[CatalogProduct]:
        return next((p for p in self.load() if p.asin == asin), None)

    async def catalog(self) -> List[CatalogProduct]:
        return list(self.load())


class FallbackLookup:
    """
    Compose lookups; the first tier with a non-empty answer wins.

    A tier that raises is logged and skipped so a store outage degrades to
    the next tier instead of failing the caller.
    """

    def __init__(self, *tiers: ProductLookup):
        self.tiers = tiers

    async def get(self, asin: str) -> Optional[CatalogProduct]:
        for tier in self.tiers:
            try:
                product = await tier.get(asin)
            except Exception:
                logger.warning("%s failed looking up %s", type(tier).__name__, asin, exc_info=True)
                continue
            if product is not None:
                return product
        return None

    async def catalog(self) -> List[CatalogProduct]:
        for tier in self.tiers:
            try:
                products = await tier.catalog()
            except Exception:
                logger.warning("%s failed loading catalog", type(tier).__name__, exc_info=True)
                continue
            if products:
                return products
        return []


async def next_catalog_position(db: AsyncSession) -> int:
    """First free catalog position; new products are appended after it."""
    result = await db.execute(select(func.max(Product.catalog_position)))
    return (result.scalar_one_or_none() or 0) + 1


def default_lookup(db: AsyncSession, catalog_path: Optional[Path] = None) -> FallbackLookup:
    return FallbackLookup(
        PrimaryStoreLookup(db),
        StaticCatalogLookup(catalog_path or settings.CATALOG_PATH),
    )
