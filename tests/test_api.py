from fastapi.testclient import TestClient

from fireworks_orders.config import settings
from fireworks_orders.main import create_app
from fireworks_orders.models.outbox import NotificationIntent
from fireworks_orders.schemas.order import QuotationCreate
from fireworks_orders.services.notifier import Notifier
from fireworks_orders.services.order_service import OrderService
from tests.fakes import BlockingChannel, RecordingChannel

TRANSPORT = {"carrier_name": "KPN Parcel", "tracking_number": "LR-4471", "contact": "9000011111"}


def create_quotation(client, order_fields, reference="Q-1001", **overrides):
    return client.post("/orders/quotation", json=dict(order_fields(**overrides), quotation_id=reference))


def create_booking(client, order_fields, reference="ORD-5", **overrides):
    return client.post("/orders/booking", json=dict(order_fields(**overrides), order_id=reference))


def put_status(client, reference, status, **fields):
    return client.put(f"/tracking/bookings/{reference}/status", json=dict(fields, status=status))


def test_create_quotation_returns_pdf(client, order_fields):
    response = create_quotation(client, order_fields)

    assert response.status_code == 201
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["x-order-reference"] == "Q-1001"
    assert response.headers["content-disposition"] == 'attachment; filename="ravi_kumar-Q-1001-quotation.pdf"'
    assert response.content.startswith(b"%PDF")


def test_creation_notifies_after_response(client, order_fields, channels):
    create_booking(client, order_fields)

    recipients = [recipient for recipient, _, _ in channels["email"].sent]
    assert recipients == [settings.ADMIN_EMAIL, "ravi@example.com"]


def test_validation_error_body(client, order_fields):
    response = create_quotation(client, order_fields, total=0)

    assert response.status_code == 400
    assert response.json()["kind"] == "ValidationError"


def test_reference_with_trailing_newline_is_400(client, order_fields, artifact_store):
    response = create_quotation(client, order_fields, reference="Q-8\n")

    assert response.status_code == 400
    assert response.json()["kind"] == "ValidationError"
    assert client.get("/orders/quotation").json()["total"] == 0
    assert not list(artifact_store.base_dir.glob("*.pdf"))


def test_malformed_body_is_400(client):
    response = client.post("/orders/quotation", json={"quotation_id": "Q-1", "products": "nope"})

    assert response.status_code == 400
    assert response.json()["kind"] == "ValidationError"


def test_unknown_catalog_entry_is_404(client, order_fields):
    products = [{"id": 99, "product_type": "sparklers", "quantity": 1, "price": 10, "discount": 0}]
    response = create_quotation(client, order_fields, products=products)

    assert response.status_code == 404
    assert response.json()["kind"] == "NotFound"


def test_duplicate_is_409(client, order_fields):
    create_quotation(client, order_fields)
    response = create_quotation(client, order_fields)

    assert response.status_code == 409
    assert response.json() == {"kind": "Conflict", "detail": "Quotation ID Q-1001 already exists"}


def test_get_and_list(client, order_fields):
    create_booking(client, order_fields)

    record = client.get("/orders/booking/ORD-5").json()
    assert record["status"] == "booked"
    assert record["line_items"][0]["unit_label"] == "Box"

    listing = client.get("/orders/booking", params={"status": "booked"}).json()
    assert listing["total"] == 1
    assert client.get("/orders/booking/ORD-404").status_code == 404
    assert client.get("/orders/invoice").status_code == 400


def test_document_download_accepts_pdf_suffix(client, order_fields):
    created = create_quotation(client, order_fields)

    response = client.get("/orders/quotation/Q-1001.pdf/document")

    assert response.status_code == 200
    assert response.content == created.content


def test_update_line_items_returns_new_pdf(client, order_fields):
    create_quotation(client, order_fields)

    response = client.put("/orders/quotation/Q-1001", json={"total": 300, "additional_discount": 5})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert client.get("/orders/quotation/Q-1001").json()["artifact_ref"].endswith("-v2.pdf")


def test_status_update_returns_json(client, order_fields):
    create_booking(client, order_fields)

    response = client.put("/orders/booking/ORD-5", json={"status": "paid", "payment_method": "cash"})

    assert response.status_code == 200
    assert response.json()["status"] == "paid"


def test_dispatch_without_transport_is_409(client, order_fields):
    create_booking(client, order_fields)
    put_status(client, "ORD-5", "paid", payment_method="cash")
    put_status(client, "ORD-5", "packed")

    response = put_status(client, "ORD-5", "dispatched")

    assert response.status_code == 409
    assert response.json()["kind"] == "InvalidTransition"
    assert client.get("/orders/booking/ORD-5").json()["status"] == "packed"


def test_tracking_flow(client, order_fields, channels):
    create_booking(client, order_fields)
    put_status(client, "ORD-5", "paid", payment_method="cash")
    put_status(client, "ORD-5", "packed")
    response = put_status(client, "ORD-5", "dispatched", transport_details=TRANSPORT)

    assert response.status_code == 200
    assert response.json()["transport_details"]["tracking_number"] == "LR-4471"

    queue = client.get("/tracking/bookings", params={"status": "dispatched"}).json()
    assert [o["reference"] for o in queue["orders"]] == ["ORD-5"]
    assert client.get("/tracking/bookings", params={"status": "booked"}).status_code == 400

    history = client.get("/tracking/bookings/ORD-5/transport").json()
    assert [h["carrier_name"] for h in history] == ["KPN Parcel"]

    whatsapp = [order["status"] for _, order, _ in channels["whatsapp"].sent]
    assert whatsapp == ["paid", "packed", "dispatched"]


def test_delete_quotation_cancels_it(client, order_fields):
    create_quotation(client, order_fields)

    response = client.delete("/orders/quotation/Q-1001")

    assert response.status_code == 200
    assert response.json()["status"] == "canceled"
    assert client.delete("/orders/quotation/Q-1001").status_code == 409


def test_delete_booking_cascades(client, order_fields):
    create_quotation(client, order_fields, reference="Q-9")
    create_booking(client, order_fields, reference="ORD-9", quotation_id="Q-9")

    assert client.delete("/orders/booking/ORD-9").status_code == 204
    assert client.get("/orders/booking/ORD-9/document").status_code == 404
    assert client.get("/orders/quotation/Q-9/document").status_code == 404


def test_cancel_booking(client, order_fields):
    create_booking(client, order_fields)

    response = client.post("/orders/booking/ORD-5/cancel")

    assert response.json()["status"] == "canceled"


def test_search(client, order_fields):
    create_quotation(client, order_fields)

    found = client.post("/orders/quotation/search", json={"customer_name": "ravi", "mobile_number": "98765"})
    assert [o["reference"] for o in found.json()] == ["Q-1001"]

    missing = client.post("/orders/quotation/search", json={"customer_name": "ravi"})
    assert missing.status_code == 400


def test_categories(client):
    assert client.get("/catalog/categories").json() == {"categories": ["Sky Shots", "Sparklers"]}


def test_health(client):
    body = client.get("/health").json()
    assert body["database"] == "healthy"
    assert body["service"] == settings.SERVICE_NAME


def test_startup_does_not_wait_for_pending_notifications(engine, session_factory, seeded, artifact_store,
                                                         order_fields):
    OrderService(seeded, artifact_store=artifact_store).create_quotation(
        QuotationCreate(quotation_id="Q-50", **order_fields())
    )
    email = BlockingChannel()
    app = create_app(
        session_factory=session_factory,
        artifact_store=artifact_store,
        notifier=Notifier(channels={"email": email, "whatsapp": RecordingChannel()}, max_attempts=1, retry_delay=0),
        bind=engine,
        metrics_enabled=False,
    )

    with TestClient(app) as client:
        assert email.entered.wait(5)
        assert client.get("/").status_code == 200
        email.release.set()
        app.state.pending_dispatch.join(5)

    assert [recipient for recipient, _, _ in email.sent] == [settings.ADMIN_EMAIL]
    assert {i.status for i in seeded.query(NotificationIntent).all()} == {"sent"}
