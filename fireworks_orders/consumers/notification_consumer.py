"""
RabbitMQ consumer that delivers published notification intents
"""
import json
import sys
from typing import Callable, Optional

import pika
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fireworks_orders.config import settings
from fireworks_orders.database import SessionLocal
from fireworks_orders.logger import get_logger
from fireworks_orders.models.outbox import OUTBOX_PENDING, OUTBOX_PUBLISHED
from fireworks_orders.repositories.outbox_repository import OutboxRepository
from fireworks_orders.services.artifact_store import ArtifactStore
from fireworks_orders.services.notifier import Notifier
from fireworks_orders.services.outbox import deliver

logger = get_logger(__name__)


class NotificationConsumer:
    """Turns one broker message into one Notifier call"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal,
                 notifier: Optional[Notifier] = None, artifact_store: Optional[ArtifactStore] = None):
        self.session_factory = session_factory
        self.notifier = notifier or Notifier()
        self.artifact_store = artifact_store or ArtifactStore()

    def handle(self, body: bytes) -> bool:
        """
        Deliver the intent named by a message body

        Returns:
            True when the message can be acknowledged (delivered, failed
            after retries, or already handled); False to dead-letter it
        """
        event = json.loads(body)
        intent_id = event.get("data", {}).get("intent_id")
        if intent_id is None:
            logger.error(f"Message {event.get('event_id')} carries no intent id")
            return False

        db = self.session_factory()
        try:
            outbox = OutboxRepository(db)
            intent = outbox.get(intent_id)
            if intent is None:
                logger.error(f"Intent {intent_id} not found")
                return False
            if intent.status not in (OUTBOX_PENDING, OUTBOX_PUBLISHED):
                logger.info(f"Intent {intent_id} already {intent.status}; skipping")
                return True
            deliver(outbox, intent, self.notifier, self.artifact_store)
            db.commit()
            return True
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    def callback(self, ch, method, properties, body):
        """pika on_message_callback with manual acknowledgement"""
        try:
            handled = self.handle(body)
        except json.JSONDecodeError as e:
            logger.error(f"✗ Invalid JSON: {e}")
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
            return
        except SQLAlchemyError as e:
            # Database hiccup: put the message back for another try
            logger.error(f"✗ Database error while delivering notification: {e}")
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=True)
            return

        if handled:
            ch.basic_ack(delivery_tag=method.delivery_tag)
        else:
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)


def start_consumer():
    """Connect to RabbitMQ and consume notification intents until interrupted"""
    consumer = NotificationConsumer()
    logger.info(f"Connecting to RabbitMQ: {settings.RABBITMQ_URL}")
    connection = pika.BlockingConnection(pika.URLParameters(settings.RABBITMQ_URL))
    channel = connection.channel()

    channel.exchange_declare(
        exchange=settings.RABBITMQ_EXCHANGE,
        exchange_type="topic",
        durable=True
    )
    channel.queue_declare(queue=settings.RABBITMQ_QUEUE, durable=True)
    channel.queue_bind(
        exchange=settings.RABBITMQ_EXCHANGE,
        queue=settings.RABBITMQ_QUEUE,
        routing_key=settings.RABBITMQ_ROUTING_KEY
    )
    logger.info(f"✓ Queue {settings.RABBITMQ_QUEUE} bound with routing key: {settings.RABBITMQ_ROUTING_KEY}")

    # Notifier retries block the callback, so take one message at a time
    channel.basic_qos(prefetch_count=1)
    channel.basic_consume(
        queue=settings.RABBITMQ_QUEUE,
        on_message_callback=consumer.callback,
        auto_ack=False
    )

    logger.info(f"✓ {settings.SERVICE_NAME} notification consumer started")
    try:
        channel.start_consuming()
    except KeyboardInterrupt:
        logger.info("Consumer stopped by user")
        channel.stop_consuming()
        connection.close()
        sys.exit(0)


if __name__ == "__main__":
    start_consumer()
