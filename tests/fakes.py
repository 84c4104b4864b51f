"""
Test doubles for notifier channels
"""
import threading

from fireworks_orders.exceptions import NotifyFailure


class RecordingChannel:
    """Notifier channel that records sends and can fail on demand"""

    def __init__(self, failures=0, retryable=True):
        self.sent = []
        self.calls = 0
        self.failures = failures
        self.retryable = retryable

    def send(self, recipient, order, artifact):
        self.calls += 1
        if self.failures:
            self.failures -= 1
            raise NotifyFailure("channel down", retryable=self.retryable)
        self.sent.append((recipient, order, artifact))


class BlockingChannel(RecordingChannel):
    """Notifier channel that holds every send until released"""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def send(self, recipient, order, artifact):
        self.entered.set()
        self.release.wait(5)
        super().send(recipient, order, artifact)
