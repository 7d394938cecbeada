"""Pipeline trigger endpoints (scheduler and scrape vendor webhooks)"""
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.deps import verify_webhook_token
from app.core.database import get_db, get_session_factory
from app.models.search import SearchStatus
from app.schemas.functions import (
    PriceDropCheckRequest,
    PriceDropCheckResponse,
    ProductUpdateErrorSchema,
    ScrapeCompleteResponse,
    SearchCheckSchema,
    SeedProductsRequest,
    SeedProductsResponse,
    SimulationResponse,
)
from app.services.ingestion_service import IngestionService
from app.services.price_drop_service import PriceDropService
from app.services.price_updater import PriceUpdater

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_webhook_token)])


@router.post("/check-search-price-drops", response_model=PriceDropCheckResponse)
async def check_search_price_drops(
    data: PriceDropCheckRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Check one search for price drops and create alerts.

    Fired when a search row changes. Only searches whose scrape is Done are
    checked; any other status answers `{}`.
    """
    if data.record.status != SearchStatus.DONE.value:
        return JSONResponse({})

    result = await PriceDropService(db).check_search(data.record.id)

    if result.skipped:
        return PriceDropCheckResponse(message="Search is not tracked", skipped=True)

    return PriceDropCheckResponse(
        message="Price check completed",
        price_drops_count=result.price_drops_count,
        alerts_created=result.alerts_created,
    )


@router.post("/scrape-complete", response_model=ScrapeCompleteResponse)
async def scrape_complete(
    records: List[Any] = Body(..., description="Raw product records from the scrape vendor"),
    id: Optional[str] = Query(None, description="Search the scrape was started for"),
    db: AsyncSession = Depends(get_db),
):
    """Store a finished scrape: upsert products, snapshot prices, link, mark Done."""
    if not id:
        raise HTTPException(status_code=400, detail="Missing search ID in query parameter")

    logger.info("Received %d records for search %s", len(records), id)
    result = await IngestionService(db).complete_scrape(id, records)

    message = (
        "Scrape completed successfully"
        if result.products_saved
        else "No valid products found, but search marked as complete"
    )
    return ScrapeCompleteResponse(message=message, products_saved=result.products_saved, search_id=id)


@router.post("/simulate-price-updates", response_model=SimulationResponse)
async def simulate_price_updates(
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Advance simulated prices for one batch of products, then check tracked searches."""
    result = await PriceUpdater(session_factory).run()

    message = "Price simulation completed" if result.products_processed else "No products with prices found"
    return SimulationResponse(
        message=message,
        products_processed=result.products_processed,
        snapshots_created=result.snapshots_created,
        tracked_searches_checked=result.tracked_searches_checked,
        errors=[ProductUpdateErrorSchema(asin=e.asin, error=e.error) for e in result.errors],
        search_checks=[
            SearchCheckSchema(
                search_id=outcome.search_id,
                ok=outcome.ok,
                skipped=bool(outcome.result and outcome.result.skipped),
                alerts_created=outcome.result.alerts_created if outcome.result else 0,
                error=outcome.error,
            )
            for outcome in result.search_checks
        ],
    )


@router.post("/seed-products", response_model=SeedProductsResponse)
async def seed_products(
    data: SeedProductsRequest,
    db: AsyncSession = Depends(get_db),
):
    """Load catalog records with initial snapshots, optionally linking them to a search."""
    result = await IngestionService(db).seed_products(data.products, search_id=data.search_id)
    return SeedProductsResponse(
        message="Products seeded successfully",
        products_inserted=result.products_saved,
        snapshots_created=result.snapshots_created,
    )
