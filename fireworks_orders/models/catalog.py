"""
SQLAlchemy models for the reference data read by the order builder
"""
from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String

from fireworks_orders.database import Base


class CatalogEntry(Base):
    """One product row; a single table keyed by (category, id)"""

    __tablename__ = "catalog_entries"

    category = Column(String(100), primary_key=True)
    id = Column(Integer, primary_key=True, autoincrement=False)
    category_label = Column(String(100), nullable=False)
    serial_number = Column(String(50), nullable=True)
    display_name = Column(String(255), nullable=False)
    unit_price = Column(Float, nullable=False, default=0)
    unit_label = Column(String(20), nullable=False, default="")
    discount_percent = Column(Float, nullable=False, default=0)
    available = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<CatalogEntry(category='{self.category}', id={self.id}, name='{self.display_name}')>"


class Customer(Base):
    """Customer or agent record"""

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    customer_name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=True)
    mobile_number = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    district = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    customer_type = Column(String(50), nullable=False, default="User")
    agent_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
