"""
Logging setup shared by the API process and the notification consumer
"""
import logging
import os
from logging.handlers import RotatingFileHandler

from fireworks_orders.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a package logger; handlers are attached once on the package root."""
    root = logging.getLogger("fireworks_orders")

    if not root.handlers:
        root.setLevel(settings.LOG_LEVEL.upper())
        fmt = logging.Formatter(LOG_FORMAT)

        stream = logging.StreamHandler()
        stream.setFormatter(fmt)
        root.addHandler(stream)

        if settings.LOG_FILE:
            log_dir = os.path.dirname(settings.LOG_FILE)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            handler = RotatingFileHandler(
                settings.LOG_FILE,
                maxBytes=5 * 1024 * 1024,   # 5 MB
                backupCount=5
            )
            handler.setFormatter(fmt)
            root.addHandler(handler)

    if name.startswith("fireworks_orders"):
        return logging.getLogger(name)
    return root.getChild(name)
