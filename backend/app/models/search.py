"""Search and search-product link models"""
import enum
import uuid

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func

from app.core.database import Base


class SearchStatus(str, enum.Enum):
    PENDING = "Pending"
    SCRAPING = "Scraping"
    DONE = "Done"
    FAILED = "Failed"


class Search(Base):
    __tablename__ = "searches"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    query = Column(String, nullable=False)

    status = Column(String(10), nullable=False, default=SearchStatus.PENDING.value)
    is_tracked = Column(Boolean, nullable=False, default=False, index=True)

    last_scraped_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ProductSearch(Base):
    """Many-to-many link; the composite key makes duplicate pairs impossible."""
    __tablename__ = "product_search"

    asin = Column(String(20), ForeignKey("products.asin"), primary_key=True)
    search_id = Column(String(36), ForeignKey("searches.id", ondelete="CASCADE"), primary_key=True, index=True)
