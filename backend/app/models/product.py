"""Product model"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime
from sqlalchemy.sql import func

from app.core.database import Base


class Product(Base):
    __tablename__ = "products"

    # Vendor catalog key (ASIN)
    asin = Column(String(20), primary_key=True)
    name = Column(String, nullable=False)
    image = Column(String)
    url = Column(String)
    brand = Column(String(100))
    keyword = Column(String(100))

    # Insertion sequence; browse and catalog listings follow it
    catalog_position = Column(Integer, index=True)

    # Cached copy of the latest snapshot price
    final_price = Column(Numeric(10, 2), index=True)
    currency = Column(String(3), nullable=False, default="USD")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
