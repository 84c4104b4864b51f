"""
Health check endpoint
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fireworks_orders import __version__
from fireworks_orders.api.deps import get_db
from fireworks_orders.config import settings
from fireworks_orders.models.order import utcnow

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Health check endpoint

    Checks:
    - Service status
    - Database connectivity
    - Artifact directory
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {str(e)}"

    artifact_dir = request.app.state.artifact_store.base_dir
    storage_status = "healthy" if artifact_dir.is_dir() or not artifact_dir.exists() else "unhealthy: not a directory"

    overall_status = "healthy" if (db_status == "healthy" and storage_status == "healthy") else "unhealthy"

    return {
        "service": settings.SERVICE_NAME,
        "status": overall_status,
        "database": db_status,
        "artifact_storage": storage_status,
        "notify_transport": settings.NOTIFY_TRANSPORT,
        "timestamp": utcnow().isoformat()
    }


@router.get("/")
def root():
    """Root endpoint"""
    return {
        "service": settings.SERVICE_NAME,
        "version": __version__,
        "docs": "/docs"
    }
