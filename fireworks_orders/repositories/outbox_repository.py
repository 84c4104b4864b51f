"""
Outbox Repository - notification intents
"""
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from fireworks_orders.models.order import utcnow
from fireworks_orders.models.outbox import (
    OUTBOX_FAILED,
    OUTBOX_PENDING,
    OUTBOX_PUBLISHED,
    OUTBOX_SENT,
    NotificationIntent,
)


class OutboxRepository:
    """Repository for notification outbox rows"""

    def __init__(self, db: Session):
        self.db = db

    def enqueue(self, kind: str, order_reference: str, event: str, channel: str,
                recipient: str, payload: dict) -> NotificationIntent:
        """Stage an intent inside the caller's transaction"""
        intent = NotificationIntent(
            kind=kind,
            order_reference=order_reference,
            event=event,
            channel=channel,
            recipient=recipient,
            payload=payload,
            status=OUTBOX_PENDING,
        )
        self.db.add(intent)
        self.db.flush()
        return intent

    def get(self, intent_id: int) -> Optional[NotificationIntent]:
        return self.db.query(NotificationIntent).filter(NotificationIntent.id == intent_id).first()

    def get_many(self, intent_ids: Iterable[int]) -> List[NotificationIntent]:
        ids = list(intent_ids)
        if not ids:
            return []
        return self.db.query(NotificationIntent).filter(
            NotificationIntent.id.in_(ids),
            NotificationIntent.status == OUTBOX_PENDING
        ).order_by(NotificationIntent.id).all()

    def claim_pending(self) -> List[NotificationIntent]:
        """
        Oldest intent never handed off, row-locked until the caller commits.
        Rows already locked by another worker are skipped.
        """
        return self.db.query(NotificationIntent).filter(
            NotificationIntent.status == OUTBOX_PENDING
        ).order_by(NotificationIntent.id).with_for_update(skip_locked=True).limit(1).all()

    def mark_sent(self, intent: NotificationIntent, attempts: int) -> None:
        intent.status = OUTBOX_SENT
        intent.attempts += attempts
        intent.last_error = None
        intent.dispatched_at = utcnow()

    def mark_published(self, intent: NotificationIntent) -> None:
        intent.status = OUTBOX_PUBLISHED
        intent.dispatched_at = utcnow()

    def mark_failed(self, intent: NotificationIntent, attempts: int, reason: str) -> None:
        intent.status = OUTBOX_FAILED
        intent.attempts += attempts
        intent.last_error = reason
        intent.dispatched_at = utcnow()
