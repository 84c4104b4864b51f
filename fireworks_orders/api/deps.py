"""
Request-scoped dependencies built from what create_app() put on app.state
"""
from fastapi import Depends, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from fireworks_orders.repositories.catalog_repository import CatalogRepository
from fireworks_orders.services.artifact_store import ArtifactStore, download_name
from fireworks_orders.services.catalog_lookup import CatalogLookup
from fireworks_orders.services.order_service import OrderService
from fireworks_orders.services.outbox import OutboxRelay
from fireworks_orders.services.tracking_service import TrackingService


def get_db(request: Request):
    """Yield a DB session for a single request."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_artifact_store(request: Request) -> ArtifactStore:
    return request.app.state.artifact_store


def get_relay(request: Request) -> OutboxRelay:
    return request.app.state.relay


def get_catalog(request: Request, db: Session = Depends(get_db)) -> CatalogLookup:
    return CatalogLookup(CatalogRepository(db), request.app.state.category_cache)


def get_order_service(
    db: Session = Depends(get_db),
    artifact_store: ArtifactStore = Depends(get_artifact_store),
    catalog: CatalogLookup = Depends(get_catalog),
) -> OrderService:
    """Dependency to get OrderService instance"""
    return OrderService(db, artifact_store=artifact_store, catalog=catalog)


def get_tracking_service(orders: OrderService = Depends(get_order_service)) -> TrackingService:
    return TrackingService(orders)


def pdf_response(order, content: bytes, status_code: int = 200) -> Response:
    """Stream a document back as an attachment"""
    filename = download_name(order.customer_name, order.reference, order.document_type)
    return Response(
        content=content,
        status_code=status_code,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Order-Reference": order.reference,
        },
    )
