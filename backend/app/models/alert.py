"""Price drop alert model"""
import uuid

from sqlalchemy import Column, String, Numeric, Boolean, DateTime, ForeignKey, Index, false
from sqlalchemy.sql import func

from app.core.database import Base


class PriceDropAlert(Base):
    """
    Durable notice that a product linked to a tracked search dropped in price.

    Product name/url and owner are copied in at creation time so the alert
    stays readable if the product record changes later. Only `is_read` is
    ever updated.
    """
    __tablename__ = "price_drop_alerts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    search_id = Column(String(36), ForeignKey("searches.id", ondelete="CASCADE"), nullable=False)
    asin = Column(String(20), ForeignKey("products.asin"), nullable=False)

    product_name = Column(String, nullable=False)
    product_url = Column(String)

    old_price = Column(Numeric(10, 2), nullable=False)
    new_price = Column(Numeric(10, 2), nullable=False)
    price_drop_amount = Column(Numeric(10, 2), nullable=False)
    price_drop_percent = Column(Numeric(5, 2), nullable=False)

    is_read = Column(Boolean, nullable=False, default=False)
    user_id = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_alert_search_asin_read", "search_id", "asin", "is_read"),
        # At most one unread alert per (search, product)
        Index(
            "uq_alert_search_asin_unread", "search_id", "asin",
            unique=True,
            sqlite_where=is_read == false(),
            postgresql_where=is_read == false(),
        ),
    )
