"""
Dispatch tracking endpoints for bookings past payment
"""
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from fireworks_orders.api.deps import get_relay, get_tracking_service
from fireworks_orders.schemas.order import (
    OrderListResponse,
    OrderResponse,
    StatusUpdate,
    TransportResponse,
)
from fireworks_orders.services.outbox import OutboxRelay
from fireworks_orders.services.tracking_service import TrackingService

router = APIRouter(prefix="/tracking", tags=["tracking"])


@router.get("/bookings", response_model=OrderListResponse, summary="Fulfillment queue")
def fulfillment_queue(
    status_filter: Optional[str] = Query(None, alias="status", description="paid, packed, dispatched or delivered"),
    service: TrackingService = Depends(get_tracking_service),
):
    orders = service.fulfillment_queue(status_filter)
    return OrderListResponse(orders=[OrderResponse.model_validate(o) for o in orders], total=len(orders))


@router.put("/bookings/{reference}/status", response_model=OrderResponse, summary="Advance booking status")
def advance_booking(
    reference: str,
    update: StatusUpdate,
    background_tasks: BackgroundTasks,
    service: TrackingService = Depends(get_tracking_service),
    relay: OutboxRelay = Depends(get_relay),
):
    """
    Move a booking along paid -> packed -> dispatched -> delivered

    - **dispatched** requires **transport_details**
    - **paid** requires **payment_method**; "bank" also needs a transaction id and amount
    """
    result = service.advance(reference, update)
    if result.intent_ids:
        background_tasks.add_task(relay.dispatch, result.intent_ids)
    return OrderResponse.model_validate(result.order)


@router.get("/bookings/{reference}/transport", response_model=List[TransportResponse],
            summary="Transport history")
def transport_history(reference: str, service: TrackingService = Depends(get_tracking_service)):
    return [TransportResponse.model_validate(r) for r in service.transport_history(reference)]
