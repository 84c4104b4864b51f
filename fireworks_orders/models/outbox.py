"""
Notification intents written in the same transaction as the order mutation
"""
from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from fireworks_orders.database import Base
from fireworks_orders.models.order import utcnow

OUTBOX_PENDING = "pending"
OUTBOX_PUBLISHED = "published"
OUTBOX_SENT = "sent"
OUTBOX_FAILED = "failed"


class NotificationIntent(Base):
    """Outbox row; dispatched after commit by the outbox relay"""

    __tablename__ = "notification_outbox"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    kind = Column(String(20), nullable=False)
    order_reference = Column(String(64), nullable=False, index=True)
    event = Column(String(30), nullable=False)
    channel = Column(String(20), nullable=False)
    recipient = Column(String(255), nullable=False)
    payload = Column(JSON, nullable=False)
    status = Column(String(20), nullable=False, default=OUTBOX_PENDING, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    dispatched_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<NotificationIntent(id={self.id}, channel='{self.channel}', status='{self.status}')>"
