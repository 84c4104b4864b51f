"""
Catalog Lookup - resolves (product_type, product_id) to unit attributes
"""
from dataclasses import dataclass
from typing import List, Optional

from fireworks_orders.exceptions import NotFound, ValidationError
from fireworks_orders.repositories.catalog_repository import CatalogRepository
from fireworks_orders.services.cache import TTLCache


@dataclass(frozen=True)
class CatalogItem:
    product_id: int
    product_type: str
    display_name: str
    unit_price: float
    unit_label: str
    discount_percent: float
    available: bool


class CatalogLookup:
    """Single parameterized lookup against catalog_entries"""

    def __init__(self, repository: CatalogRepository, category_cache: Optional[TTLCache] = None):
        self.repository = repository
        self.category_cache = category_cache

    def resolve(self, product_type: str, product_id) -> CatalogItem:
        """
        Resolve a catalog entry

        Raises:
            ValidationError: If the id is not an integer
            NotFound: If no available entry exists for the category
        """
        try:
            numeric_id = int(product_id)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid product id {product_id!r} for type {product_type}")

        entry = self.repository.get_entry(product_type, numeric_id)
        if entry is None or not entry.available:
            raise NotFound(f"Product {product_id} of type {product_type} not found or unavailable")

        return CatalogItem(
            product_id=entry.id,
            product_type=entry.category_label,
            display_name=entry.display_name,
            unit_price=entry.unit_price,
            unit_label=entry.unit_label or "",
            discount_percent=entry.discount_percent,
            available=entry.available,
        )

    def categories(self) -> List[str]:
        """Category labels, served from the TTL cache when one is injected"""
        if self.category_cache is None:
            return self.repository.list_categories()
        return self.category_cache.get(self.repository.list_categories)
