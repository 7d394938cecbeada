"""Search endpoints - create, link, track"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings
from app.core.database import get_db
from app.core.errors import SearchNotFoundError
from app.models.search import Search
from app.schemas.search import (
    LinkResponse,
    ProductListResponse,
    ProductResponse,
    SearchCreateRequest,
    SearchListResponse,
    SearchResponse,
    TrackingUpdateRequest,
)
from app.services.linker import SearchLinker
from app.services.tracking import set_tracked

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


@router.post("/", response_model=SearchResponse, status_code=201)
@limiter.limit(f"{settings.RATE_LIMIT_PER_MINUTE}/minute")
async def create_search(
    request: Request,
    data: SearchCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Create a search for a user.

    By default the query is matched against the current catalog right away;
    an empty query links the head of the catalog (browse).
    """
    search = Search(user_id=data.user_id, query=data.query.strip())
    db.add(search)
    await db.commit()
    await db.refresh(search)

    if data.link:
        await SearchLinker(db).link_search(search.id)
        await db.refresh(search)

    return SearchResponse.model_validate(search)


@router.get("/", response_model=SearchListResponse)
async def list_searches(
    user_id: str = Query(..., description="Owner of the searches"),
    limit: int = Query(20, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List a user's searches, newest first."""
    result = await db.execute(
        select(Search)
        .where(Search.user_id == user_id)
        .order_by(Search.created_at.desc())
        .limit(limit)
    )
    searches = result.scalars().all()

    return SearchListResponse(
        searches=[SearchResponse.model_validate(s) for s in searches],
        count=len(searches),
    )


@router.get("/{search_id}", response_model=SearchResponse)
async def get_search(
    search_id: str,
    db: AsyncSession = Depends(get_db),
):
    search = await db.get(Search, search_id)
    if search is None:
        raise SearchNotFoundError(search_id)
    return SearchResponse.model_validate(search)


@router.put("/{search_id}/tracking", response_model=SearchResponse)
async def update_tracking(
    search_id: str,
    data: TrackingUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Opt a search in or out of price drop alerts."""
    search = await set_tracked(db, search_id, data.is_tracked)
    return SearchResponse.model_validate(search)


@router.post("/{search_id}/link", response_model=LinkResponse)
async def link_search(
    search_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Re-match the search against the catalog. Existing links are kept."""
    result = await SearchLinker(db).link_search(search_id)
    return LinkResponse(
        search_id=result.search_id,
        browse=result.browse,
        matched=result.matched,
        linked=result.linked,
    )


@router.get("/{search_id}/products", response_model=ProductListResponse)
async def list_search_products(
    search_id: str,
    db: AsyncSession = Depends(get_db),
):
    if await db.get(Search, search_id) is None:
        raise SearchNotFoundError(search_id)

    products = await SearchLinker(db).linked_products(search_id)
    return ProductListResponse(
        products=[ProductResponse.model_validate(p) for p in products],
        count=len(products),
    )
