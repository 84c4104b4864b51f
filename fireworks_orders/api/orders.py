"""
Quotation and booking API endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import Response

from fireworks_orders.api.deps import get_order_service, get_relay, pdf_response
from fireworks_orders.models.order import OrderKind
from fireworks_orders.schemas.order import (
    BookingCreate,
    OrderListResponse,
    OrderPatch,
    OrderResponse,
    QuotationCreate,
    SearchRequest,
)
from fireworks_orders.services.order_service import MutationResult, OrderService, parse_kind
from fireworks_orders.services.outbox import OutboxRelay

router = APIRouter(prefix="/orders", tags=["orders"])


def _notify_after_response(background_tasks: BackgroundTasks, relay: OutboxRelay, result: MutationResult) -> None:
    if result.intent_ids:
        background_tasks.add_task(relay.dispatch, result.intent_ids)


@router.post("/quotation", status_code=status.HTTP_201_CREATED, summary="Create quotation",
             response_class=Response, responses={201: {"content": {"application/pdf": {}}}})
def create_quotation(
    request: QuotationCreate,
    background_tasks: BackgroundTasks,
    service: OrderService = Depends(get_order_service),
    relay: OutboxRelay = Depends(get_relay),
):
    """
    Create a quotation and return its PDF

    - **quotation_id**: Quotation id ([A-Za-z0-9_-]+)
    - **customer_id**: Existing customer, or party fields for a walk-in "User"
    - **products**: Line items; catalog items are checked against the catalog
    - **total**: Asserted grand total (must be positive)
    """
    result = service.create_quotation(request)
    _notify_after_response(background_tasks, relay, result)
    return pdf_response(result.order, result.artifact, status.HTTP_201_CREATED)


@router.post("/booking", status_code=status.HTTP_201_CREATED, summary="Create booking",
             response_class=Response, responses={201: {"content": {"application/pdf": {}}}})
def create_booking(
    request: BookingCreate,
    background_tasks: BackgroundTasks,
    service: OrderService = Depends(get_order_service),
    relay: OutboxRelay = Depends(get_relay),
):
    """
    Create a booking and return its estimate bill

    With **quotation_id** the quotation must be pending; it becomes booked
    in the same transaction.
    """
    result = service.create_booking(request)
    _notify_after_response(background_tasks, relay, result)
    return pdf_response(result.order, result.artifact, status.HTTP_201_CREATED)


@router.post("/{kind}/search", response_model=List[OrderResponse], summary="Search orders")
def search_orders(
    kind: str,
    request: SearchRequest,
    service: OrderService = Depends(get_order_service),
):
    """Case-insensitive name substring and mobile substring, newest first"""
    orders = service.search(parse_kind(kind), request.customer_name, request.mobile_number)
    return [OrderResponse.model_validate(o) for o in orders]


@router.get("/{kind}", response_model=OrderListResponse, summary="List orders")
def list_orders(
    kind: str,
    status_filter: Optional[str] = Query(None, alias="status", description="Only this status"),
    customer_type: Optional[str] = Query(None, description="Only this customer type"),
    skip: int = Query(0, ge=0, description="Number of orders to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of orders to return"),
    service: OrderService = Depends(get_order_service),
):
    orders, total = service.list(parse_kind(kind), status_filter, customer_type, skip, limit)
    return OrderListResponse(orders=[OrderResponse.model_validate(o) for o in orders], total=total)


@router.get("/{kind}/{reference}", response_model=OrderResponse, summary="Get order")
def get_order(kind: str, reference: str, service: OrderService = Depends(get_order_service)):
    return OrderResponse.model_validate(service.get(parse_kind(kind), reference))


@router.get("/{kind}/{reference}/document", summary="Download document",
            response_class=Response, responses={200: {"content": {"application/pdf": {}}}})
def get_document(kind: str, reference: str, service: OrderService = Depends(get_order_service)):
    """
    Current quotation / estimate bill; re-rendered if the stored file is gone

    - **reference**: Quotation or order id; a trailing ".pdf" is ignored
    """
    if reference.lower().endswith(".pdf"):
        reference = reference[:-4]
    order, content = service.fetch_artifact(parse_kind(kind), reference)
    return pdf_response(order, content)


@router.put("/{kind}/{reference}", summary="Update order",
            responses={200: {"content": {"application/pdf": {}, "application/json": {}}}})
def update_order(
    kind: str,
    reference: str,
    patch: OrderPatch,
    background_tasks: BackgroundTasks,
    service: OrderService = Depends(get_order_service),
    relay: OutboxRelay = Depends(get_relay),
):
    """
    Patch line items, amounts and/or status

    Returns the regenerated PDF when line items or amounts changed,
    otherwise the updated record.
    """
    result = service.update(parse_kind(kind), reference, patch)
    _notify_after_response(background_tasks, relay, result)
    if result.regenerated:
        return pdf_response(result.order, result.artifact)
    return OrderResponse.model_validate(result.order)


@router.post("/booking/{reference}/cancel", response_model=OrderResponse, summary="Cancel booking")
def cancel_booking(
    reference: str,
    background_tasks: BackgroundTasks,
    service: OrderService = Depends(get_order_service),
    relay: OutboxRelay = Depends(get_relay),
):
    """Only a booking that is still booked can be canceled"""
    result = service.cancel(OrderKind.BOOKING, reference)
    _notify_after_response(background_tasks, relay, result)
    return OrderResponse.model_validate(result.order)


@router.delete("/{kind}/{reference}", summary="Cancel quotation / delete booking",
               responses={200: {"model": OrderResponse}, 204: {"description": "Booking deleted"}})
def delete_order(
    kind: str,
    reference: str,
    background_tasks: BackgroundTasks,
    service: OrderService = Depends(get_order_service),
    relay: OutboxRelay = Depends(get_relay),
):
    """
    - **quotation**: cancels a pending quotation and returns it
    - **booking**: deletes the booking, its linked quotation and all their documents
    """
    order_kind = parse_kind(kind)
    if order_kind == OrderKind.QUOTATION:
        result = service.cancel(order_kind, reference)
        _notify_after_response(background_tasks, relay, result)
        return OrderResponse.model_validate(result.order)

    service.delete(order_kind, reference)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
