import pytest

from fireworks_orders.exceptions import InvalidTransition, ValidationError
from fireworks_orders.models.order import OrderKind
from fireworks_orders.schemas.order import TransportDetails
from fireworks_orders.services.lifecycle import (
    accepts_document_edits,
    check_payment,
    check_transition,
    check_transport,
    is_terminal,
)

BOOKING = OrderKind.BOOKING
QUOTATION = OrderKind.QUOTATION


@pytest.mark.parametrize("current,target", [
    ("booked", "paid"),
    ("paid", "packed"),
    ("packed", "dispatched"),
    ("dispatched", "delivered"),
    ("booked", "canceled"),
])
def test_legal_booking_moves(current, target):
    check_transition(BOOKING, current, target)


@pytest.mark.parametrize("current,target", [
    ("paid", "booked"),
    ("booked", "dispatched"),
    ("paid", "canceled"),
    ("delivered", "dispatched"),
    ("canceled", "booked"),
])
def test_illegal_booking_moves(current, target):
    with pytest.raises(InvalidTransition):
        check_transition(BOOKING, current, target)


def test_unknown_status_is_a_validation_error():
    with pytest.raises(ValidationError):
        check_transition(BOOKING, "booked", "shipped")
    with pytest.raises(ValidationError):
        check_transition(QUOTATION, "pending", "paid")


def test_quotation_terminal_states():
    assert is_terminal(QUOTATION, "booked")
    assert is_terminal(QUOTATION, "canceled")
    assert not is_terminal(QUOTATION, "pending")


def test_document_edits():
    assert accepts_document_edits(QUOTATION, "pending")
    assert not accepts_document_edits(QUOTATION, "booked")
    assert accepts_document_edits(BOOKING, "packed")
    assert not accepts_document_edits(BOOKING, "delivered")
    assert not accepts_document_edits(BOOKING, "canceled")


def test_payment_guard():
    check_payment("cash", None, None)
    check_payment("bank", "TXN-1", 270.0)

    with pytest.raises(InvalidTransition, match="Payment method"):
        check_payment(None, None, None)
    with pytest.raises(InvalidTransition, match="Transaction ID"):
        check_payment("bank", "  ", 270.0)
    with pytest.raises(InvalidTransition, match="Amount paid"):
        check_payment("Bank", "TXN-1", 0)


def test_transport_guard():
    check_transport(TransportDetails(carrier_name="KPN Parcel", tracking_number="LR-77"))
    with pytest.raises(InvalidTransition):
        check_transport(None)
