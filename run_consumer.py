#!/usr/bin/env python
"""
Script to run the RabbitMQ notification consumer
"""
from fireworks_orders.consumers.notification_consumer import start_consumer

if __name__ == "__main__":
    start_consumer()
