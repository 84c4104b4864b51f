"""
Order lifecycle - legal status transitions and their guards
"""
from typing import Dict, FrozenSet, Optional

from fireworks_orders.exceptions import InvalidTransition, ValidationError
from fireworks_orders.models.order import BookingStatus, OrderKind, QuotationStatus

QUOTATION_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    QuotationStatus.PENDING.value: frozenset({QuotationStatus.BOOKED.value, QuotationStatus.CANCELED.value}),
    QuotationStatus.BOOKED.value: frozenset(),
    QuotationStatus.CANCELED.value: frozenset(),
}

BOOKING_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    BookingStatus.BOOKED.value: frozenset({BookingStatus.PAID.value, BookingStatus.CANCELED.value}),
    BookingStatus.PAID.value: frozenset({BookingStatus.PACKED.value}),
    BookingStatus.PACKED.value: frozenset({BookingStatus.DISPATCHED.value}),
    BookingStatus.DISPATCHED.value: frozenset({BookingStatus.DELIVERED.value}),
    BookingStatus.DELIVERED.value: frozenset(),
    BookingStatus.CANCELED.value: frozenset(),
}

TRANSITIONS = {
    OrderKind.QUOTATION: QUOTATION_TRANSITIONS,
    OrderKind.BOOKING: BOOKING_TRANSITIONS,
}

INITIAL_STATUS = {
    OrderKind.QUOTATION: QuotationStatus.PENDING.value,
    OrderKind.BOOKING: BookingStatus.BOOKED.value,
}

CANCELABLE_FROM = {
    OrderKind.QUOTATION: QuotationStatus.PENDING.value,
    OrderKind.BOOKING: BookingStatus.BOOKED.value,
}

# Bookings in these states take payment corrections / transport updates
PAID_OR_LATER = frozenset({
    BookingStatus.PAID.value,
    BookingStatus.PACKED.value,
    BookingStatus.DISPATCHED.value,
    BookingStatus.DELIVERED.value,
})
DISPATCHED_OR_LATER = frozenset({BookingStatus.DISPATCHED.value, BookingStatus.DELIVERED.value})
FULFILLMENT_STATUSES = (
    BookingStatus.PAID.value,
    BookingStatus.PACKED.value,
    BookingStatus.DISPATCHED.value,
    BookingStatus.DELIVERED.value,
)

BANK_PAYMENT = "bank"


def is_terminal(kind: OrderKind, status: str) -> bool:
    return not TRANSITIONS[kind].get(status)


def accepts_document_edits(kind: OrderKind, status: str) -> bool:
    """Quotations are editable while pending; bookings until they are terminal"""
    if kind == OrderKind.QUOTATION:
        return status == QuotationStatus.PENDING.value
    return not is_terminal(kind, status)


def check_status_value(kind: OrderKind, status: str) -> str:
    if status not in TRANSITIONS[kind]:
        allowed = ", ".join(TRANSITIONS[kind])
        raise ValidationError(f"Invalid status '{status}' for {kind.value}; expected one of: {allowed}")
    return status


def check_transition(kind: OrderKind, current: str, target: str) -> None:
    """
    Raise unless current -> target is a legal move

    Raises:
        ValidationError: If target is not a status of this kind
        InvalidTransition: If the move is not allowed from current
    """
    check_status_value(kind, target)
    if target not in TRANSITIONS[kind].get(current, frozenset()):
        raise InvalidTransition(f"Cannot move {kind.value} from '{current}' to '{target}'")


def check_payment(method: Optional[str], transaction_id: Optional[str], amount_paid: Optional[float]) -> None:
    """Guard for -> paid"""
    if not method or not method.strip():
        raise InvalidTransition("Payment method is required for paid status")
    if method.strip().lower() == BANK_PAYMENT:
        if not transaction_id or not transaction_id.strip():
            raise InvalidTransition("Transaction ID is required for bank payments")
        if amount_paid is None or amount_paid <= 0:
            raise InvalidTransition("Amount paid must be positive for bank payments")


def check_transport(transport) -> None:
    """Guard for -> dispatched"""
    if transport is None:
        raise InvalidTransition("Transport details required for dispatched status")
