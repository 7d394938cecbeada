"""Search to product linker"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import dialect_insert
from app.core.errors import SearchNotFoundError
from app.models.product import Product
from app.models.search import Search, ProductSearch
from app.services.product_lookup import CatalogProduct, ProductLookup, default_lookup, next_catalog_position
from app.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """
    Products selected for a query.

    `browse` is True when the query had no usable terms and the result is
    just the head of the catalog, not a real match.
    """
    browse: bool
    terms: List[str] = field(default_factory=list)
    products: List[CatalogProduct] = field(default_factory=list)


@dataclass
class LinkResult:
    search_id: str
    browse: bool
    matched: int
    linked: int


def extract_terms(query: Optional[str], min_length: Optional[int] = None) -> List[str]:
    """Lowercased whitespace-separated terms of at least `min_length` chars."""
    if min_length is None:
        min_length = settings.LINK_MIN_TERM_LENGTH
    return [t for t in (query or "").strip().lower().split() if len(t) >= min_length]


def match_products(
    query: Optional[str],
    catalog: Sequence[CatalogProduct],
    limit: Optional[int] = None,
) -> MatchResult:
    """
    Select catalog products for a search query.

    A product matches when ANY term is a case-insensitive substring of its
    name, brand or keyword. Results keep catalog order and are capped at
    `limit`; there is no ranking.
    """
    if limit is None:
        limit = settings.LINK_MATCH_LIMIT

    terms = extract_terms(query)
    if not terms:
        return MatchResult(browse=True, products=list(catalog[:limit]))

    matches = []
    for product in catalog:
        fields = [
            (product.name or "").lower(),
            (product.brand or "").lower(),
            (product.keyword or "").lower(),
        ]
        if any(term in text for term in terms for text in fields if text):
            matches.append(product)
            if len(matches) >= limit:
                break

    return MatchResult(browse=False, terms=terms, products=matches)


class SearchLinker:
    """Maintains product_search rows. Every write is an idempotent upsert."""

    def __init__(self, db: AsyncSession, lookup: Optional[ProductLookup] = None):
        self.db = db
        self.lookup = lookup or default_lookup(db)

    async def link_search(self, search_id: str) -> LinkResult:
        """Match a search's query against the current catalog and link the hits."""
        search = await self.db.get(Search, search_id)
        if search is None:
            raise SearchNotFoundError(search_id)

        catalog = await self.lookup.catalog()
        match = match_products(search.query, catalog)

        await self._ensure_products(match.products)
        linked = await self.link_products(search_id, [p.asin for p in match.products])

        if match.browse:
            logger.info(
                "Search %s has no usable query terms, linked first %d catalog products",
                search_id, linked,
            )
        else:
            logger.info(
                "Search %s matched %d/%d catalog products for terms %s",
                search_id, len(match.products), len(catalog), match.terms,
            )
        return LinkResult(
            search_id=search_id,
            browse=match.browse,
            matched=len(match.products),
            linked=linked,
        )

    async def link_products(self, search_id: str, asins: Iterable[str], commit: bool = True) -> int:
        """Insert (asin, search_id) pairs; existing pairs are left untouched."""
        rows = [{"asin": asin, "search_id": search_id} for asin in dict.fromkeys(asins)]
        if not rows:
            return 0

        stmt = dialect_insert(self.db, ProductSearch).values(rows)
        await self.db.execute(stmt.on_conflict_do_nothing(index_elements=["asin", "search_id"]))
        if commit:
            await self.db.commit()
        return len(rows)

    async def linked_products(self, search_id: str) -> List[Product]:
        result = await self.db.execute(
            select(Product)
            .join(ProductSearch, ProductSearch.asin == Product.asin)
            .where(ProductSearch.search_id == search_id)
            .order_by(Product.asin)
        )
        return list(result.scalars().all())

    async def _ensure_products(self, products: Sequence[CatalogProduct]):
        """
        Create product rows for catalog entries that only exist in the static
        tier. A newly created product with a price gets its first snapshot so
        the cached price always mirrors the ledger.
        """
        if not products:
            return
        start = await next_catalog_position(self.db)
        rows = [
            {
                "asin": p.asin,
                "name": p.name,
                "brand": p.brand,
                "keyword": p.keyword,
                "image": p.image,
                "url": p.url,
                "final_price": p.final_price,
                "currency": p.currency,
                "catalog_position": start + i,
            }
            for i, p in enumerate(products)
        ]
        stmt = (
            dialect_insert(self.db, Product)
            .values(rows)
            .on_conflict_do_nothing(index_elements=["asin"])
            .returning(Product.asin)
        )
        created = set((await self.db.execute(stmt)).scalars().all())

        store = SnapshotStore(self.db)
        for product in products:
            if product.asin in created and product.final_price is not None:
                await store.append_snapshot(product.asin, product.final_price)
        if created:
            logger.info("Added %d catalog products to the store", len(created))
