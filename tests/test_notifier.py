import httpx
import pytest

from fireworks_orders.config import settings
from fireworks_orders.exceptions import NotifyFailure
from fireworks_orders.services.notifier import (
    EmailChannel,
    Notifier,
    WhatsAppChannel,
    build_whatsapp_payload,
    compose_email,
    normalize_mobile,
)
from tests.fakes import RecordingChannel

ORDER = {
    "kind": "booking",
    "reference": "ORD-5",
    "status": "dispatched",
    "audience": "customer",
    "customer_name": "Ravi Kumar",
    "mobile_number": "9876543210",
    "line_items": [{"display_name": "Rockets", "quantity": 2, "unit_price": 200.0}],
    "total": 320.0,
    "transport_details": {"carrier_name": "KPN Parcel", "tracking_number": "LR-4471", "contact": None},
}


@pytest.mark.parametrize("raw,expected", [
    ("9876543210", "+919876543210"),
    ("98765 43210", "+919876543210"),
    ("919876543210", "+919876543210"),
    ("+91 98765-43210", "+919876543210"),
])
def test_normalize_mobile(raw, expected):
    assert normalize_mobile(raw) == expected


@pytest.mark.parametrize("raw", ["12345", "0091987654321", None, "449876543210"])
def test_normalize_mobile_rejects(raw):
    with pytest.raises(NotifyFailure) as exc_info:
        normalize_mobile(raw)
    assert not exc_info.value.retryable


def test_retries_until_success():
    channel = RecordingChannel(failures=2)
    result = Notifier({"email": channel}, max_attempts=3, retry_delay=0).notify("email", "a@b.c", ORDER, None)

    assert result.ok
    assert result.attempts == 3
    assert len(channel.sent) == 1


def test_gives_up_after_max_attempts():
    channel = RecordingChannel(failures=5)
    result = Notifier({"email": channel}, max_attempts=3, retry_delay=0).notify("email", "a@b.c", ORDER, None)

    assert not result.ok
    assert result.attempts == 3
    assert "channel down" in result.reason


def test_permanent_failure_is_not_retried():
    channel = RecordingChannel(failures=5, retryable=False)
    result = Notifier({"whatsapp": channel}, max_attempts=3, retry_delay=0).notify("whatsapp", "1", ORDER, None)

    assert not result.ok
    assert channel.calls == 1


def test_unknown_channel_is_reported_not_raised():
    result = Notifier({}, max_attempts=3, retry_delay=0).notify("sms", "1", ORDER, None)
    assert not result.ok


@pytest.mark.parametrize("audience,status,subject", [
    ("admin", "booked", "New Booking Notification: Order ORD-5"),
    ("admin", "paid", "New Payment Notification: Order ORD-5"),
    ("customer", "booked", "Thank You for Your Booking! Order ORD-5"),
    ("customer", "paid", "Payment Received for Order ORD-5"),
    ("customer", "dispatched", "Order ORD-5 Status Updated"),
])
def test_email_subjects(audience, status, subject):
    actual, body = compose_email(dict(ORDER, audience=audience, status=status))
    assert actual == subject
    assert "ORD-5" in body


def test_quotation_email_for_admin():
    subject, body = compose_email(dict(ORDER, kind="quotation", reference="Q-1", audience="admin", event="updated"))
    assert subject == "New Quotation Notification: Q-1"
    assert "updated" in body
    assert "Quotation ID: Q-1" in body


def test_console_email_does_not_raise():
    EmailChannel(service="console").send("ravi@example.com", ORDER, b"%PDF")


def test_unknown_email_service_is_permanent():
    with pytest.raises(NotifyFailure) as exc_info:
        EmailChannel(service="pigeon").send("ravi@example.com", ORDER, None)
    assert not exc_info.value.retryable


def test_whatsapp_payload_carries_transport():
    payload = build_whatsapp_payload("+919876543210", ORDER)
    params = [p["text"] for p in payload["template"]["components"][0]["parameters"]]
    assert params == ["dispatched", "KPN Parcel", "LR-4471", "N/A"]


def test_whatsapp_payload_hides_transport_before_dispatch():
    payload = build_whatsapp_payload("+919876543210", dict(ORDER, status="paid"))
    params = [p["text"] for p in payload["template"]["components"][0]["parameters"]]
    assert params == ["paid", "N/A", "N/A", "N/A"]


def _whatsapp(status_code, requests):
    def handler(request):
        requests.append(request)
        return httpx.Response(status_code, json={"messages": [{"id": "wamid.1"}]})
    return WhatsAppChannel(client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_whatsapp_send(monkeypatch):
    monkeypatch.setattr(settings, "WHATSAPP_ENABLED", True)
    monkeypatch.setattr(settings, "WHATSAPP_ACCESS_TOKEN", "token")
    requests = []

    _whatsapp(200, requests).send("9876543210", ORDER, None)

    assert len(requests) == 1
    assert requests[0].headers["Authorization"] == "Bearer token"


@pytest.mark.parametrize("status_code,retryable", [(500, True), (400, False)])
def test_whatsapp_api_errors(monkeypatch, status_code, retryable):
    monkeypatch.setattr(settings, "WHATSAPP_ENABLED", True)

    with pytest.raises(NotifyFailure) as exc_info:
        _whatsapp(status_code, []).send("9876543210", ORDER, None)
    assert exc_info.value.retryable is retryable


def test_whatsapp_disabled_skips_api(monkeypatch):
    monkeypatch.setattr(settings, "WHATSAPP_ENABLED", False)
    requests = []

    _whatsapp(200, requests).send("9876543210", ORDER, None)

    assert requests == []
