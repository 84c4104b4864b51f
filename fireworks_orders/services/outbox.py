"""
Notification outbox - intents planned inside the order transaction and
dispatched after commit
"""
import threading
from typing import Callable, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fireworks_orders.config import settings
from fireworks_orders.logger import get_logger
from fireworks_orders.models.order import Order, OrderKind
from fireworks_orders.models.outbox import NotificationIntent
from fireworks_orders.publishers.event_publisher import NotificationPublisher
from fireworks_orders.repositories.outbox_repository import OutboxRepository
from fireworks_orders.services.artifact_store import ArtifactStore, download_name
from fireworks_orders.services.notifier import (
    AUDIENCE_ADMIN,
    AUDIENCE_CUSTOMER,
    CHANNEL_EMAIL,
    CHANNEL_WHATSAPP,
    Notifier,
    NotifyResult,
)

logger = get_logger(__name__)

EVENT_CREATED = "created"
EVENT_UPDATED = "updated"
EVENT_STATUS_CHANGED = "status_changed"

TRANSPORT_INLINE = "inline"
TRANSPORT_RABBITMQ = "rabbitmq"


def order_payload(order: Order, event: str, audience: str) -> dict:
    """JSON snapshot of the order as the notification should describe it"""
    transport = order.transport_details
    return {
        "kind": order.kind,
        "reference": order.reference,
        "status": order.status,
        "event": event,
        "audience": audience,
        "customer_name": order.customer_name,
        "mobile_number": order.mobile_number,
        "email": order.email,
        "address": order.address,
        "district": order.district,
        "state": order.state,
        "customer_type": order.customer_type,
        "agent_name": order.agent_name,
        "line_items": list(order.line_items or []),
        "net_rate": order.net_rate,
        "you_save": order.you_save,
        "additional_discount": order.additional_discount,
        "total": order.total,
        "transport_details": transport.as_dict() if transport else None,
        "artifact_ref": order.artifact_ref,
        "download_name": download_name(order.customer_name, order.reference, order.document_type),
    }


def plan_intents(order: Order, event: str) -> List[Tuple[str, str, str]]:
    """
    (channel, recipient, audience) triples for one committed mutation

    Quotations only ever notify the admin, on creation and regeneration.
    Bookings notify the admin on every event; the customer hears about
    creation and status changes by e-mail, and status changes by WhatsApp.
    """
    admin = (CHANNEL_EMAIL, settings.ADMIN_EMAIL, AUDIENCE_ADMIN)

    if order.kind == OrderKind.QUOTATION.value:
        if event in (EVENT_CREATED, EVENT_UPDATED):
            return [admin]
        return []

    if event == EVENT_CREATED:
        planned = [admin]
        if order.email:
            planned.append((CHANNEL_EMAIL, order.email, AUDIENCE_CUSTOMER))
        return planned

    if event == EVENT_STATUS_CHANGED:
        planned = []
        if order.email:
            planned.append((CHANNEL_EMAIL, order.email, AUDIENCE_CUSTOMER))
        planned.append(admin)
        if order.mobile_number:
            planned.append((CHANNEL_WHATSAPP, order.mobile_number, AUDIENCE_CUSTOMER))
        return planned

    return [admin]


def enqueue_intents(outbox: OutboxRepository, order: Order, event: str) -> List[int]:
    """Stage the planned intents in the caller's transaction"""
    ids = []
    for channel, recipient, audience in plan_intents(order, event):
        intent = outbox.enqueue(
            kind=order.kind,
            order_reference=order.reference,
            event=event,
            channel=channel,
            recipient=recipient,
            payload=order_payload(order, event, audience),
        )
        ids.append(intent.id)
    return ids


def deliver(outbox: OutboxRepository, intent: NotificationIntent, notifier: Notifier,
            artifact_store: ArtifactStore) -> NotifyResult:
    """Send one intent in-process and record the outcome on its row"""
    artifact = None
    if intent.channel == CHANNEL_EMAIL:
        artifact = artifact_store.read(intent.payload.get("artifact_ref"))

    result = notifier.notify(intent.channel, intent.recipient, intent.payload, artifact)
    if result.ok:
        outbox.mark_sent(intent, result.attempts)
    else:
        outbox.mark_failed(intent, result.attempts, result.reason or "unknown error")
    return result


def intent_message(intent: NotificationIntent) -> dict:
    return {
        "intent_id": intent.id,
        "kind": intent.kind,
        "order_reference": intent.order_reference,
        "event": intent.event,
        "channel": intent.channel,
    }


class OutboxRelay:
    """
    Hands committed intents to the notifier (inline) or to RabbitMQ.

    Runs after the response; never raises into the caller. Rows that could
    not be handed off stay pending and are picked up by dispatch_pending().
    """

    def __init__(self, session_factory: Callable[[], Session], notifier: Optional[Notifier] = None,
                 artifact_store: Optional[ArtifactStore] = None, publisher=None,
                 transport: Optional[str] = None):
        self.session_factory = session_factory
        self.notifier = notifier or Notifier()
        self.artifact_store = artifact_store or ArtifactStore()
        self.transport = transport or settings.NOTIFY_TRANSPORT
        if publisher is None and self.transport == TRANSPORT_RABBITMQ:
            publisher = NotificationPublisher()
        self.publisher = publisher

    def dispatch(self, intent_ids: Iterable[int]) -> int:
        """Dispatch the given pending intents; returns how many were handled"""
        ids = list(intent_ids)
        if not ids:
            return 0
        return self._run(lambda outbox: outbox.get_many(ids))

    def dispatch_pending(self, limit: int = 100) -> int:
        """
        Re-dispatch intents left pending by an earlier process

        Claims one locked row per transaction so concurrent workers never hand
        off the same intent twice; stops at the first row that stays pending.
        """
        handled = 0
        while handled < limit:
            if not self._run(lambda outbox: outbox.claim_pending()):
                break
            handled += 1
        if handled:
            logger.info(f"Re-dispatched {handled} pending notification(s)")
        return handled

    def start_pending_dispatch(self, limit: int = 100) -> threading.Thread:
        """Run dispatch_pending() on a daemon thread; the caller does not wait for channels"""
        thread = threading.Thread(
            target=self.dispatch_pending,
            args=(limit,),
            name="outbox-redispatch",
            daemon=True,
        )
        thread.start()
        return thread

    def _run(self, select: Callable[[OutboxRepository], List[NotificationIntent]]) -> int:
        db = self.session_factory()
        handled = 0
        try:
            outbox = OutboxRepository(db)
            for intent in select(outbox):
                dispatched = self._dispatch_one(outbox, intent)
                db.commit()
                if dispatched:
                    handled += 1
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Outbox dispatch aborted, intents stay pending: {e}")
        finally:
            db.close()
        return handled

    def _dispatch_one(self, outbox: OutboxRepository, intent: NotificationIntent) -> bool:
        if self.transport == TRANSPORT_RABBITMQ:
            if not self.publisher.publish_notification(intent_message(intent)):
                logger.warning(f"Intent {intent.id} not published; left pending")
                return False
            outbox.mark_published(intent)
            return True

        deliver(outbox, intent, self.notifier, self.artifact_store)
        return True
