"""Product price snapshot model (append-only price ledger)"""
from sqlalchemy import Column, Integer, BigInteger, String, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from app.core.database import Base


class ProductSnapshot(Base):
    __tablename__ = "product_snapshot"

    # SQLite only autoincrements INTEGER PRIMARY KEY
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    asin = Column(String(20), ForeignKey("products.asin"), nullable=False)
    final_price = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_snapshot_asin_created", "asin", "created_at", "id"),
    )
