"""
Error taxonomy surfaced from the order builder and order store to the API
"""
from typing import Optional


class OrderError(Exception):
    """Base class: every error carries a stable kind and an HTTP status"""
    kind = "OrderError"
    status_code = 500
    retryable = False

    def __init__(self, message: str, *, retryable: Optional[bool] = None):
        super().__init__(message)
        self.message = message
        if retryable is not None:
            self.retryable = retryable

    def to_dict(self) -> dict:
        return {"kind": self.kind, "detail": self.message}


class ValidationError(OrderError):
    """Malformed or missing input; never retried automatically"""
    kind = "ValidationError"
    status_code = 400


class NotFound(OrderError):
    """Party, catalog entry or order reference does not exist"""
    kind = "NotFound"
    status_code = 404


class Conflict(OrderError):
    """Duplicate kind-specific id on create"""
    kind = "Conflict"
    status_code = 409


class InvalidTransition(OrderError):
    """Status change not legal from the current state or missing its side payload"""
    kind = "InvalidTransition"
    status_code = 409


class PersistenceFailure(OrderError):
    """Transaction or storage failure; safe to retry"""
    kind = "PersistenceFailure"
    status_code = 503
    retryable = True


class RenderFailure(OrderError):
    """Document generation failed; aborts the mutating transaction"""
    kind = "RenderFailure"
    status_code = 500

    def __init__(self, message: str, *, retryable: Optional[bool] = None):
        super().__init__(message, retryable=retryable)
        if self.retryable:
            self.status_code = 503


class NotifyFailure(OrderError):
    """
    Raised inside notifier channels only. The notifier converts it into a
    failed NotifyResult, so it never reaches the API.
    """
    kind = "NotifyFailure"

    def __init__(self, message: str, *, retryable: bool = True):
        super().__init__(message, retryable=retryable)
