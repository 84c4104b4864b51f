"""
Catalog and Customer Repositories - read-only Data Access Layer
"""
import re
from typing import List, Optional

from sqlalchemy.orm import Session

from fireworks_orders.models.catalog import CatalogEntry, Customer


def normalize_category(product_type: str) -> str:
    """'Sky Shots' -> 'sky_shots'"""
    return re.sub(r"\s+", "_", product_type.strip().lower())


class CatalogRepository:
    """Repository for catalog entry lookups"""

    def __init__(self, db: Session):
        self.db = db

    def get_entry(self, product_type: str, product_id: int) -> Optional[CatalogEntry]:
        """Get a catalog entry by category and id"""
        return self.db.query(CatalogEntry).filter(
            CatalogEntry.category == normalize_category(product_type),
            CatalogEntry.id == product_id
        ).first()

    def list_categories(self) -> List[str]:
        """Get distinct category labels"""
        rows = self.db.query(CatalogEntry.category_label).distinct().order_by(
            CatalogEntry.category_label
        ).all()
        return [row[0] for row in rows]

    def add(self, entry: CatalogEntry) -> CatalogEntry:
        """Stage a catalog entry; used for seeding reference data"""
        entry.category = normalize_category(entry.category_label)
        self.db.add(entry)
        self.db.flush()
        return entry


class CustomerRepository:
    """Repository for customer/agent lookups"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, customer_id: int) -> Optional[Customer]:
        """Get customer by ID"""
        return self.db.query(Customer).filter(Customer.id == customer_id).first()

    def find_all(self, customer_id: int) -> List[Customer]:
        """All rows matching an id, so callers can insist on exactly one"""
        return self.db.query(Customer).filter(Customer.id == customer_id).all()
