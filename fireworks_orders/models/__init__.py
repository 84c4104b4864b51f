"""
Models package
"""
from fireworks_orders.models.catalog import CatalogEntry, Customer
from fireworks_orders.models.order import (
    BookingStatus,
    Order,
    OrderKind,
    QuotationStatus,
    TransportRecord,
)
from fireworks_orders.models.outbox import NotificationIntent

__all__ = [
    "BookingStatus",
    "CatalogEntry",
    "Customer",
    "NotificationIntent",
    "Order",
    "OrderKind",
    "QuotationStatus",
    "TransportRecord",
]
