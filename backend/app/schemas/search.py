"""Search, product and alert schemas"""
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class SearchCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=36)
    query: str = Field(..., max_length=200)
    link: bool = Field(True, description="Link catalog products immediately")


class SearchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    query: str
    status: Literal['Pending', 'Scraping', 'Done', 'Failed']
    is_tracked: bool
    last_scraped_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SearchListResponse(BaseModel):
    searches: List[SearchResponse]
    count: int


class TrackingUpdateRequest(BaseModel):
    is_tracked: bool


class LinkResponse(BaseModel):
    search_id: str
    browse: bool = Field(..., description="True when the query had no usable terms")
    matched: int
    linked: int


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    asin: str
    name: str
    brand: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None
    final_price: Optional[Decimal] = None
    currency: str = "USD"


class ProductListResponse(BaseModel):
    products: List[ProductResponse]
    count: int


class SnapshotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    final_price: Decimal
    created_at: datetime


class PriceHistoryResponse(BaseModel):
    asin: str
    snapshots: List[SnapshotResponse]


class AlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    search_id: str
    asin: str
    product_name: str
    product_url: Optional[str] = None
    old_price: Decimal
    new_price: Decimal
    price_drop_amount: Decimal
    price_drop_percent: Decimal
    is_read: bool
    user_id: str
    created_at: Optional[datetime] = None


class AlertListResponse(BaseModel):
    alerts: List[AlertResponse]
    count: int
