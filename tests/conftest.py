"""
Shared fixtures: in-memory SQLite, temporary artifact directory and
recording notifier channels.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("METRICS_ENABLED", "false")
os.environ.setdefault("NOTIFY_TRANSPORT", "inline")
os.environ.setdefault("EMAIL_SERVICE", "console")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fireworks_orders.database import init_db
from fireworks_orders.main import create_app
from fireworks_orders.models.catalog import CatalogEntry, Customer
from fireworks_orders.repositories.catalog_repository import CatalogRepository
from fireworks_orders.services.artifact_store import ArtifactStore
from fireworks_orders.services.notifier import Notifier
from fireworks_orders.services.order_service import OrderService
from tests.fakes import RecordingChannel


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded(db):
    """Catalog entries plus an agent and one of the agent's customers"""
    catalog = CatalogRepository(db)
    catalog.add(CatalogEntry(category_label="Sparklers", id=7, display_name="10cm Electric Sparklers",
                             unit_price=100, unit_label="Box", discount_percent=10, available=True))
    catalog.add(CatalogEntry(category_label="Sparklers", id=8, display_name="Colour Sparklers",
                             unit_price=80, unit_label="Box", discount_percent=0, available=False))
    catalog.add(CatalogEntry(category_label="Sky Shots", id=3, display_name="30 Shots Multicolour",
                             unit_price=500, unit_label="Pcs", discount_percent=0, available=True))

    agent = Customer(id=1, customer_name="Kumar Agencies", mobile_number="9000000001",
                     district="Virudhunagar", state="Tamil Nadu", customer_type="Agent")
    db.add(agent)
    db.add(Customer(id=2, customer_name="Selvi Stores", address="4 Market Street, Madurai",
                    mobile_number="9000000002", email="selvi@example.com", district="Madurai",
                    state="Tamil Nadu", customer_type="Customer of Selected Agent", agent_id=1))
    db.commit()
    return db


@pytest.fixture
def artifact_store(tmp_path):
    return ArtifactStore(str(tmp_path / "pdf_data"))


@pytest.fixture
def service(seeded, artifact_store):
    return OrderService(seeded, artifact_store=artifact_store)


@pytest.fixture
def channels():
    return {"email": RecordingChannel(), "whatsapp": RecordingChannel()}


@pytest.fixture
def notifier(channels):
    return Notifier(channels=channels, max_attempts=3, retry_delay=0)


@pytest.fixture
def client(engine, session_factory, seeded, artifact_store, notifier):
    app = create_app(
        session_factory=session_factory,
        artifact_store=artifact_store,
        notifier=notifier,
        bind=engine,
        metrics_enabled=False,
    )
    return TestClient(app)


@pytest.fixture
def order_fields():
    """Factory for a walk-in order body: 3 boxes of sparklers at 10% off"""
    def make(**overrides):
        fields = {
            "customer_type": "User",
            "customer_name": "Ravi Kumar",
            "address": "12 Main Road, Sivakasi",
            "mobile_number": "9876543210",
            "email": "ravi@example.com",
            "district": "Virudhunagar",
            "state": "Tamil Nadu",
            "products": [
                {"id": 7, "product_type": "sparklers", "productname": "10cm Electric Sparklers",
                 "quantity": 3, "price": 100, "discount": 10},
            ],
            "net_rate": 300,
            "you_save": 30,
            "total": 270,
        }
        fields.update(overrides)
        return fields
    return make
