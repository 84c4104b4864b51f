"""
Tracking Service - post-booking fulfillment on top of the order service
"""
from typing import List, Optional

from fireworks_orders.exceptions import ValidationError
from fireworks_orders.models.order import Order, OrderKind, TransportRecord
from fireworks_orders.schemas.order import OrderPatch, StatusUpdate
from fireworks_orders.services.lifecycle import FULFILLMENT_STATUSES
from fireworks_orders.services.order_service import MutationResult, OrderService


class TrackingService:
    """Status-only moves of bookings plus their transport history"""

    def __init__(self, orders: OrderService):
        self.orders = orders
        self.repository = orders.repository

    def advance(self, reference: str, update: StatusUpdate) -> MutationResult:
        """Move a booking to the next status; never regenerates the artifact"""
        patch = OrderPatch(
            status=update.status,
            payment_method=update.payment_method,
            transaction_id=update.transaction_id,
            amount_paid=update.amount_paid,
            transport_details=update.transport_details,
        )
        return self.orders.update(OrderKind.BOOKING, reference, patch)

    def fulfillment_queue(self, status: Optional[str] = None) -> List[Order]:
        """Paid-or-later bookings, optionally of one status, newest first"""
        if status:
            if status not in FULFILLMENT_STATUSES:
                raise ValidationError(
                    f"Invalid status '{status}'; expected one of: {', '.join(FULFILLMENT_STATUSES)}"
                )
            statuses = [status]
        else:
            statuses = list(FULFILLMENT_STATUSES)
        return self.repository.list_by_statuses(OrderKind.BOOKING.value, statuses)

    def transport_history(self, reference: str) -> List[TransportRecord]:
        """Every transport record of a booking, oldest first"""
        return list(self.orders.get(OrderKind.BOOKING, reference).transport_records)
