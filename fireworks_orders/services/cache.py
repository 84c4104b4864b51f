"""
Read-through cache with a time-to-live
"""
import time
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class TTLCache(Generic[T]):
    """
    Holds one value and reloads it once it is older than ttl_seconds.

    Advisory only: a stale value means a new entry is not visible yet.
    No locking; two concurrent misses both load and the last one wins.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._value: Optional[T] = None
        self._loaded_at: Optional[float] = None

    def get(self, loader: Callable[[], T]) -> T:
        now = self._clock()
        if self._loaded_at is None or now - self._loaded_at > self.ttl_seconds:
            self._value = loader()
            self._loaded_at = now
        return self._value

    def invalidate(self) -> None:
        self._value = None
        self._loaded_at = None
