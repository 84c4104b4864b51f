"""
Order Repository - Data Access Layer

Methods stage changes and flush; the order service owns commit/rollback
so one request is one transaction.
"""
from typing import List, Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from fireworks_orders.models.order import Order, TransportRecord


class OrderRepository:
    """Repository for quotation and booking rows"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, kind: str, reference: str, for_update: bool = False) -> Optional[Order]:
        """Get order by kind and kind-specific id"""
        query = self.db.query(Order).filter(Order.kind == kind, Order.reference == reference)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def exists(self, kind: str, reference: str) -> bool:
        return self.db.query(Order.id).filter(
            Order.kind == kind, Order.reference == reference
        ).first() is not None

    def list(
        self,
        kind: str,
        status: Optional[str] = None,
        customer_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Order]:
        """Get orders of a kind, newest first"""
        query = self._filtered(kind, status, customer_type)
        return query.order_by(desc(Order.created_at), desc(Order.id)).offset(skip).limit(limit).all()

    def count(self, kind: str, status: Optional[str] = None, customer_type: Optional[str] = None) -> int:
        return self._filtered(kind, status, customer_type).count()

    def list_by_statuses(self, kind: str, statuses: List[str]) -> List[Order]:
        """Get orders whose status is one of the given values"""
        return self.db.query(Order).filter(
            Order.kind == kind, Order.status.in_(statuses)
        ).order_by(desc(Order.created_at), desc(Order.id)).all()

    def search(self, kind: str, customer_name: str, mobile_number: str) -> List[Order]:
        """Case-insensitive name substring and mobile substring match"""
        return self.db.query(Order).filter(
            Order.kind == kind,
            func.lower(Order.customer_name).like(f"%{customer_name.lower()}%"),
            Order.mobile_number.like(f"%{mobile_number}%")
        ).order_by(desc(Order.created_at), desc(Order.id)).all()

    def add(self, order: Order) -> Order:
        """Stage a new order"""
        self.db.add(order)
        self.db.flush()
        return order

    def append_transport(self, order: Order, carrier_name: str, tracking_number: str,
                         contact: Optional[str]) -> TransportRecord:
        """Append a transport record; earlier records are kept as history"""
        record = TransportRecord(
            carrier_name=carrier_name,
            tracking_number=tracking_number,
            contact=contact,
        )
        order.transport_records.append(record)
        self.db.flush()
        return record

    def delete(self, order: Order) -> None:
        self.db.delete(order)
        self.db.flush()

    def _filtered(self, kind: str, status: Optional[str], customer_type: Optional[str]):
        query = self.db.query(Order).filter(Order.kind == kind)
        if status:
            query = query.filter(Order.status == status)
        if customer_type:
            query = query.filter(Order.customer_type == customer_type)
        return query
