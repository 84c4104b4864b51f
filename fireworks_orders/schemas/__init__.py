"""
Schemas package
"""
from fireworks_orders.schemas.order import (
    BookingCreate,
    ErrorResponse,
    LineItemRequest,
    OrderCreateBase,
    OrderListResponse,
    OrderPatch,
    OrderResponse,
    QuotationCreate,
    SearchRequest,
    StatusUpdate,
    TransportDetails,
    TransportResponse,
)

__all__ = [
    "BookingCreate",
    "ErrorResponse",
    "LineItemRequest",
    "OrderCreateBase",
    "OrderListResponse",
    "OrderPatch",
    "OrderResponse",
    "QuotationCreate",
    "SearchRequest",
    "StatusUpdate",
    "TransportDetails",
    "TransportResponse",
]
