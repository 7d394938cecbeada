from app.models.product import Product
from app.models.snapshot import ProductSnapshot
from app.models.search import Search, SearchStatus, ProductSearch
from app.models.alert import PriceDropAlert

__all__ = [
    "Product",
    "ProductSnapshot",
    "Search",
    "SearchStatus",
    "ProductSearch",
    "PriceDropAlert",
]
