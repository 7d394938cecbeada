"""Product endpoints"""
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.search import PriceHistoryResponse, ProductResponse, SnapshotResponse
from app.services.product_lookup import default_lookup
from app.services.snapshot_store import SnapshotStore

router = APIRouter()


@router.get("/{asin}", response_model=ProductResponse)
async def get_product(
    asin: str,
    db: AsyncSession = Depends(get_db),
):
    """Get a product from the store, falling back to the bundled catalog."""
    product = await default_lookup(db).get(asin)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductResponse(**asdict(product))


@router.get("/{asin}/history", response_model=PriceHistoryResponse)
async def get_price_history(
    asin: str,
    limit: int = Query(100, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Price snapshots for a product, newest first."""
    snapshots = await SnapshotStore(db).history(asin, limit=limit, offset=offset)
    return PriceHistoryResponse(
        asin=asin,
        snapshots=[SnapshotResponse.model_validate(s) for s in snapshots],
    )
