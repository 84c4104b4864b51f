"""
SQLAlchemy models for quotations, bookings and their transport history
"""
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from fireworks_orders.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderKind(str, Enum):
    QUOTATION = "quotation"
    BOOKING = "booking"


class QuotationStatus(str, Enum):
    PENDING = "pending"
    BOOKED = "booked"
    CANCELED = "canceled"


class BookingStatus(str, Enum):
    BOOKED = "booked"
    PAID = "paid"
    PACKED = "packed"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"
    CANCELED = "canceled"


class Order(Base):
    """Quotation or booking; one row shape tagged by kind"""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    kind = Column(String(20), nullable=False, index=True)
    reference = Column(String(64), nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True)

    # Party snapshot, denormalized at creation time
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    customer_name = Column(String(255), nullable=True, index=True)
    address = Column(String(500), nullable=True)
    mobile_number = Column(String(20), nullable=True, index=True)
    email = Column(String(255), nullable=True)
    district = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    customer_type = Column(String(50), nullable=False, default="User")
    agent_name = Column(String(255), nullable=True)

    line_items = Column(JSON, nullable=False)

    net_rate = Column(Float, nullable=False, default=0)
    you_save = Column(Float, nullable=False, default=0)
    promo_discount = Column(Float, nullable=False, default=0)
    additional_discount = Column(Float, nullable=False, default=0)
    total = Column(Float, nullable=False)

    quotation_ref = Column(String(64), nullable=True, index=True)
    booking_ref = Column(String(64), nullable=True)

    payment_method = Column(String(20), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    amount_paid = Column(Float, nullable=True)

    artifact_ref = Column(String(255), nullable=True)
    artifact_generation = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    transport_records = relationship(
        "TransportRecord",
        back_populates="order",
        order_by="TransportRecord.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("kind", "reference", name="uq_orders_kind_reference"),
        CheckConstraint("total > 0", name="check_total_positive"),
        CheckConstraint("kind IN ('quotation', 'booking')", name="check_kind_valid"),
    )

    @property
    def transport_details(self):
        """Latest transport record, or None before dispatch"""
        return self.transport_records[-1] if self.transport_records else None

    @property
    def document_type(self) -> str:
        return "quotation" if self.kind == OrderKind.QUOTATION.value else "invoice"

    def __repr__(self):
        return f"<Order(kind='{self.kind}', reference='{self.reference}', status='{self.status}')>"


class TransportRecord(Base):
    """Append-only carrier/tracking history of a booking"""

    __tablename__ = "transport_records"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    carrier_name = Column(String(100), nullable=False)
    tracking_number = Column(String(50), nullable=False)
    contact = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    order = relationship("Order", back_populates="transport_records")

    def as_dict(self) -> dict:
        return {
            "carrier_name": self.carrier_name,
            "tracking_number": self.tracking_number,
            "contact": self.contact,
        }
