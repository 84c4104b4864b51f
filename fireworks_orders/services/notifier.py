"""
Notifier - best-effort delivery of order documents and status updates

notify() never raises: every failure ends up as a failed NotifyResult and
a log line. Retries (fixed backoff) live here, not in the order store.
"""
import re
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Dict, Optional, Tuple

import httpx
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_fixed

from fireworks_orders.config import settings
from fireworks_orders.exceptions import NotifyFailure
from fireworks_orders.logger import get_logger

logger = get_logger(__name__)

CHANNEL_EMAIL = "email"
CHANNEL_WHATSAPP = "whatsapp"

AUDIENCE_ADMIN = "admin"
AUDIENCE_CUSTOMER = "customer"


@dataclass
class NotifyResult:
    ok: bool
    reason: Optional[str] = None
    attempts: int = 0


def _money(value) -> str:
    return f"{settings.CURRENCY_PREFIX}{float(value or 0):.2f}"


def _details_block(order: dict) -> str:
    id_label = "Quotation ID" if order.get("kind") == "quotation" else "Order ID"
    return "\n".join([
        f"{id_label}: {order.get('reference')}",
        f"Customer Name: {order.get('customer_name') or 'N/A'}",
        f"Mobile: {order.get('mobile_number') or 'N/A'}",
        f"Email: {order.get('email') or 'N/A'}",
        f"Address: {order.get('address') or 'N/A'}",
        f"District: {order.get('district') or 'N/A'}",
        f"State: {order.get('state') or 'N/A'}",
        f"Customer Type: {order.get('customer_type') or 'User'}",
        f"Net Rate: {_money(order.get('net_rate'))}",
        f"You Save: {_money(order.get('you_save'))}",
        f"Additional Discount: {float(order.get('additional_discount') or 0):.2f}%",
        f"Total: {_money(order.get('total'))}",
    ])


def _product_lines(order: dict) -> str:
    return "\n".join(
        f"- {item.get('display_name') or 'N/A'}: {item.get('quantity', 1)} x {_money(item.get('unit_price'))}"
        for item in order.get("line_items", [])
    )


def _transport_lines(order: dict) -> str:
    transport = order.get("transport_details")
    if not transport:
        return ""
    return "Transport Details:\n" + "\n".join(
        f"{key}: {value or 'N/A'}" for key, value in transport.items()
    )


def compose_email(order: dict) -> Tuple[str, str]:
    """Subject and plain-text body for one notification payload"""
    reference = order.get("reference")
    kind = order.get("kind")
    status = order.get("status")
    audience = order.get("audience", AUDIENCE_CUSTOMER)
    company = settings.COMPANY_NAME
    details = _details_block(order)
    document = "quotation" if kind == "quotation" else "estimate bill"

    if audience == AUDIENCE_ADMIN and kind == "quotation":
        verb = "updated" if order.get("event") == "updated" else "made"
        subject = f"New Quotation Notification: {reference}"
        intro = f"A quotation has been {verb} with {company}."
    elif audience == AUDIENCE_ADMIN and status == "booked":
        subject = f"New Booking Notification: Order {reference}"
        intro = f"A new booking has been made with {company}."
    elif audience == AUDIENCE_ADMIN and status == "paid":
        subject = f"New Payment Notification: Order {reference}"
        intro = f"A payment has been received for Order {reference}."
    elif audience == AUDIENCE_ADMIN:
        subject = f"Order {reference} Status Updated: {status}"
        intro = f"Order {reference} is now {status}."
    elif status == "booked":
        subject = f"Thank You for Your Booking! Order {reference}"
        intro = f"Dear {order.get('customer_name') or 'Customer'},\n\nThank you for your booking with {company}!"
    elif status == "paid":
        subject = f"Payment Received for Order {reference}"
        intro = (
            f"Dear {order.get('customer_name') or 'Customer'},\n\n"
            f"Thank you for your payment for Order {reference}! "
            "We have received your payment, and we will start packing your order soon."
        )
    else:
        subject = f"Order {reference} Status Updated"
        intro = (
            f"Dear {order.get('customer_name') or 'Customer'},\n\n"
            f"Your order status has been updated to: {status}"
        )

    parts = [intro, "Details:\n" + details]
    if audience == AUDIENCE_CUSTOMER:
        parts.append("Products:\n" + _product_lines(order))
    transport = _transport_lines(order)
    if transport:
        parts.append(transport)
    parts.append(f"Attached is the {document} for reference.")
    parts.append(f"For any queries, contact us at {settings.COMPANY_PHONE}.")
    parts.append(f"Best regards,\n{company} Team")
    return subject, "\n\n".join(parts)


class EmailChannel:
    """E-mail with the PDF attached; 'console' mode only logs"""
    name = CHANNEL_EMAIL

    def __init__(self, service: Optional[str] = None):
        self.service = service or settings.EMAIL_SERVICE

    def send(self, recipient: str, order: dict, artifact: Optional[bytes]) -> None:
        subject, body = compose_email(order)

        if self.service == "console":
            logger.info(f"EMAIL (console) to={recipient} subject={subject!r}\n{body}")
            return
        if self.service == "smtp":
            self._send_smtp(recipient, subject, body, order.get("download_name"), artifact)
            return
        raise NotifyFailure(f"Unknown email service: {self.service}", retryable=False)

    def _send_smtp(self, recipient: str, subject: str, body: str,
                   filename: Optional[str], artifact: Optional[bytes]) -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f'"{settings.COMPANY_NAME}" <{settings.FROM_EMAIL}>'
        msg["To"] = recipient
        msg.set_content(body)
        if artifact:
            msg.add_attachment(artifact, maintype="application", subtype="pdf",
                               filename=filename or "document.pdf")

        try:
            if settings.SMTP_USE_SSL:
                server = smtplib.SMTP_SSL(settings.SMTP_SERVER, settings.SMTP_PORT,
                                          timeout=settings.NOTIFY_TIMEOUT_SECONDS)
            else:
                server = smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT,
                                      timeout=settings.NOTIFY_TIMEOUT_SECONDS)
            with server:
                if not settings.SMTP_USE_SSL:
                    server.starttls()
                if settings.SMTP_PASSWORD:
                    server.login(settings.SMTP_USERNAME or settings.FROM_EMAIL, settings.SMTP_PASSWORD)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotifyFailure(f"SMTP send to {recipient} failed: {e}") from e


def normalize_mobile(mobile_number: Optional[str]) -> str:
    """
    '98765 43210' -> '+919876543210'; '919876543210' -> '+919876543210'

    Raises:
        NotifyFailure: (not retryable) for anything else
    """
    digits = re.sub(r"\D", "", mobile_number or "")
    if len(digits) == 10:
        return f"+91{digits}"
    if len(digits) == 12 and digits.startswith("91"):
        return f"+{digits}"
    raise NotifyFailure(f"Invalid mobile number format: {mobile_number!r}", retryable=False)


def build_whatsapp_payload(number: str, order: dict) -> dict:
    status = order.get("status") or "N/A"
    transport = order.get("transport_details") or {}
    if status != "dispatched":
        transport = {}
    return {
        "messaging_product": "whatsapp",
        "to": number,
        "type": "template",
        "template": {
            "name": settings.WHATSAPP_TEMPLATE,
            "language": {"code": settings.WHATSAPP_LANGUAGE},
            "components": [
                {
                    "type": "body",
                    "parameters": [
                        {"type": "text", "text": status},
                        {"type": "text", "text": transport.get("carrier_name") or "N/A"},
                        {"type": "text", "text": transport.get("tracking_number") or "N/A"},
                        {"type": "text", "text": transport.get("contact") or "N/A"},
                    ],
                }
            ],
        },
    }


class WhatsAppChannel:
    """Status updates through the WhatsApp Business Cloud API"""
    name = CHANNEL_WHATSAPP

    def __init__(self, client: Optional[httpx.Client] = None):
        self.client = client

    def send(self, recipient: str, order: dict, artifact: Optional[bytes]) -> None:
        number = normalize_mobile(recipient)
        payload = build_whatsapp_payload(number, order)

        if not settings.WHATSAPP_ENABLED:
            logger.info(f"WHATSAPP (disabled) to={number} status={order.get('status')}")
            return

        url = f"{settings.WHATSAPP_API_URL}/{settings.WHATSAPP_PHONE_NUMBER_ID}/messages"
        headers = {
            "Authorization": f"Bearer {settings.WHATSAPP_ACCESS_TOKEN}",
            "Content-Type": "application/json",
        }
        try:
            if self.client is not None:
                response = self.client.post(url, json=payload, headers=headers)
            else:
                with httpx.Client(timeout=settings.NOTIFY_TIMEOUT_SECONDS) as client:
                    response = client.post(url, json=payload, headers=headers)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            raise NotifyFailure(f"WhatsApp API unreachable: {e}") from e

        if response.status_code >= 500:
            raise NotifyFailure(f"WhatsApp API error {response.status_code}: {response.text}")
        if response.status_code >= 400:
            raise NotifyFailure(
                f"WhatsApp API rejected message {response.status_code}: {response.text}",
                retryable=False
            )
        logger.info(f"WhatsApp status update sent to {number} for status: {order.get('status')}")


def _is_retryable(exc: BaseException) -> bool:
    return not (isinstance(exc, NotifyFailure) and not exc.retryable)


class Notifier:
    """Dispatches to a channel with bounded retries"""

    def __init__(self, channels: Optional[Dict[str, object]] = None,
                 max_attempts: Optional[int] = None, retry_delay: Optional[float] = None):
        self.channels = channels if channels is not None else {
            CHANNEL_EMAIL: EmailChannel(),
            CHANNEL_WHATSAPP: WhatsAppChannel(),
        }
        self.max_attempts = max_attempts or settings.NOTIFY_MAX_ATTEMPTS
        self.retry_delay = settings.NOTIFY_RETRY_DELAY if retry_delay is None else retry_delay

    def notify(self, channel: str, recipient: str, order: dict, artifact: Optional[bytes]) -> NotifyResult:
        """
        Send one notification

        Returns:
            NotifyResult; ok=False carries the last failure reason
        """
        handler = self.channels.get(channel)
        if handler is None:
            logger.error(f"Unknown notification channel: {channel}")
            return NotifyResult(ok=False, reason=f"unknown channel {channel}")

        attempts = 0

        def _send():
            nonlocal attempts
            attempts += 1
            handler.send(recipient, order, artifact)

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        try:
            retrying(_send)
        except Exception as e:
            logger.error(
                f"Failed to notify {recipient} via {channel} for "
                f"{order.get('kind')} {order.get('reference')} after {attempts} attempt(s): {e}"
            )
            return NotifyResult(ok=False, reason=str(e), attempts=attempts)

        logger.info(f"✓ Notification sent via {channel} to {recipient} ({order.get('reference')})")
        return NotifyResult(ok=True, attempts=attempts)
