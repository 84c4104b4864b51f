"""
Repositories package
"""
from fireworks_orders.repositories.catalog_repository import CatalogRepository, CustomerRepository
from fireworks_orders.repositories.order_repository import OrderRepository
from fireworks_orders.repositories.outbox_repository import OutboxRepository

__all__ = ["CatalogRepository", "CustomerRepository", "OrderRepository", "OutboxRepository"]
