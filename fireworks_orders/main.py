"""
FastAPI Application Entry Point - Fireworks Order Service
"""
from typing import Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.orm import Session

from fireworks_orders import __version__
from fireworks_orders.api import catalog, health, orders, tracking
from fireworks_orders.config import settings
from fireworks_orders.database import SessionLocal, engine, init_db
from fireworks_orders.exceptions import OrderError, ValidationError
from fireworks_orders.logger import get_logger
from fireworks_orders.services.artifact_store import ArtifactStore
from fireworks_orders.services.cache import TTLCache
from fireworks_orders.services.notifier import Notifier
from fireworks_orders.services.outbox import OutboxRelay

logger = get_logger(__name__)


def _describe(errors) -> str:
    parts = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(
    session_factory: Optional[Callable[[], Session]] = None,
    artifact_store: Optional[ArtifactStore] = None,
    notifier: Optional[Notifier] = None,
    publisher=None,
    bind=None,
    metrics_enabled: Optional[bool] = None,
) -> FastAPI:
    """Build the application; collaborators default to the configured ones"""
    app = FastAPI(
        title="Fireworks Order Service",
        description="Quotations, bookings, their PDF documents and dispatch tracking",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.session_factory = session_factory or SessionLocal
    app.state.bind = bind or engine
    app.state.artifact_store = artifact_store or ArtifactStore()
    app.state.category_cache = TTLCache(settings.CATEGORY_CACHE_TTL_SECONDS)
    app.state.relay = OutboxRelay(
        app.state.session_factory,
        notifier=notifier,
        artifact_store=app.state.artifact_store,
        publisher=publisher,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Order-Reference"],
    )

    @app.exception_handler(OrderError)
    async def order_error_handler(request: Request, exc: OrderError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"kind": ValidationError.kind, "detail": _describe(exc.errors())},
        )

    # Include routers
    app.include_router(health.router)
    app.include_router(orders.router)
    app.include_router(tracking.router)
    app.include_router(catalog.router)

    # Prometheus metrics
    if settings.METRICS_ENABLED if metrics_enabled is None else metrics_enabled:
        Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    def startup_event():
        """Initialize database; notifications left by a previous run go out in the background"""
        logger.info(f"Starting {settings.SERVICE_NAME}...")
        init_db(bind=app.state.bind)
        logger.info("✓ Database initialized")
        app.state.pending_dispatch = app.state.relay.start_pending_dispatch()
        logger.info(f"✓ Notify transport: {settings.NOTIFY_TRANSPORT}")
        logger.info(f"✓ Artifacts stored in: {app.state.artifact_store.base_dir}")
        logger.info(f"✓ {settings.SERVICE_NAME} is running on port {settings.SERVICE_PORT}")

    @app.on_event("shutdown")
    def shutdown_event():
        """Cleanup on shutdown"""
        logger.info(f"Shutting down {settings.SERVICE_NAME}...")

    return app


app = create_app()
