"""
RabbitMQ publisher for notification intents
"""
import json
import uuid
from typing import Dict

import pika

from fireworks_orders.config import settings
from fireworks_orders.logger import get_logger
from fireworks_orders.models.order import utcnow

logger = get_logger(__name__)

EVENT_TYPE = "NotificationRequested"


def build_event(intent_message: Dict) -> Dict:
    return {
        "event_type": EVENT_TYPE,
        "event_id": str(uuid.uuid4()),
        "event_version": "1.0",
        "timestamp": utcnow().isoformat(),
        "source": settings.SERVICE_NAME,
        "data": intent_message,
    }


class NotificationPublisher:
    """Publishes committed outbox intents for the notification consumer"""

    def __init__(self):
        self.rabbitmq_url = settings.RABBITMQ_URL
        self.exchange = settings.RABBITMQ_EXCHANGE
        self.routing_key = settings.RABBITMQ_ROUTING_KEY

    def publish_notification(self, intent_message: Dict) -> bool:
        """
        Publish one intent reference to RabbitMQ

        Args:
            intent_message: Intent id plus order reference/channel for tracing

        Returns:
            True if the broker confirmed the message, False otherwise
        """
        event = build_event(intent_message)
        try:
            connection = pika.BlockingConnection(pika.URLParameters(self.rabbitmq_url))
            try:
                channel = connection.channel()
                channel.exchange_declare(
                    exchange=self.exchange,
                    exchange_type="topic",
                    durable=True
                )
                channel.confirm_delivery()
                channel.basic_publish(
                    exchange=self.exchange,
                    routing_key=self.routing_key,
                    body=json.dumps(event),
                    properties=pika.BasicProperties(
                        delivery_mode=2,  # Persistent message
                        content_type="application/json",
                        correlation_id=event["event_id"]
                    ),
                    mandatory=True
                )
            finally:
                connection.close()
        except pika.exceptions.UnroutableError:
            logger.error(f"✗ Intent {intent_message.get('intent_id')} could not be routed to any queue")
            return False
        except pika.exceptions.AMQPError as e:
            logger.error(f"✗ Error publishing intent {intent_message.get('intent_id')}: {e}")
            return False

        logger.info(f"✓ Event published: {EVENT_TYPE} (ID: {event['event_id']})")
        return True
