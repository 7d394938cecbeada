"""Webhook/trigger request and response schemas

Field names on the wire are camelCase to match the callers (scheduler,
scrape vendor, mobile client).
"""
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TriggerRecord(BaseModel):
    """Row payload of a searches change event"""
    id: str = Field(..., min_length=1)
    status: Optional[str] = None
    query: Optional[str] = None


class PriceDropCheckRequest(BaseModel):
    record: TriggerRecord


class PriceDropCheckResponse(CamelModel):
    message: str
    price_drops_count: int = Field(0, alias="priceDropsCount")
    alerts_created: int = Field(0, alias="alertsCreated")
    skipped: bool = False


class ProductUpdateErrorSchema(BaseModel):
    asin: str
    error: str


class SearchCheckSchema(CamelModel):
    search_id: str = Field(..., alias="searchId")
    ok: bool
    skipped: bool = False
    alerts_created: int = Field(0, alias="alertsCreated")
    error: Optional[str] = None


class SimulationResponse(CamelModel):
    message: str
    products_processed: int = Field(0, alias="productsProcessed")
    snapshots_created: int = Field(0, alias="snapshotsCreated")
    tracked_searches_checked: int = Field(0, alias="trackedSearchesChecked")
    errors: List[ProductUpdateErrorSchema] = Field(default_factory=list)
    search_checks: List[SearchCheckSchema] = Field(default_factory=list, alias="searchChecks")


class ScrapeCompleteResponse(BaseModel):
    message: str
    products_saved: int
    search_id: str


class SeedProductsRequest(CamelModel):
    # Raw dicts: records missing asin/name are filtered, not rejected
    products: List[Any]
    search_id: Optional[str] = Field(None, alias="searchId")


class SeedProductsResponse(CamelModel):
    message: str
    products_inserted: int = Field(0, alias="productsInserted")
    snapshots_created: int = Field(0, alias="snapshotsCreated")
