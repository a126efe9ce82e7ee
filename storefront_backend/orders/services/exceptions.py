# orders/services/exceptions.py

"""
ORDER SERVICE ERRORS

Centralized domain errors for order lifecycle services.

Each error carries the canonical API error `code` and the HTTP status the
views map it to; the message is the human-readable text returned to clients.
"""


class OrderError(Exception):
    """Base exception for all order service failures."""

    code = "ORDER_ERROR"
    http_status = 400

    def __init__(self, message: str = "", *, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class OrderNotFoundError(OrderError):
    """Raised when an order (or tracking token) does not resolve."""

    code = "ORDER_NOT_FOUND"
    http_status = 404


class OrderPermissionError(OrderError):
    """Raised when the actor neither owns the order nor is an admin."""

    code = "ORDER_FORBIDDEN"
    http_status = 403


class InvalidOrderTransitionError(OrderError):
    """Raised when the requested action is not allowed from the current state."""

    code = "INVALID_ORDER_STATE"
    http_status = 400


class OrderWindowExpiredError(OrderError):
    """Raised when a cancel/return window has elapsed."""

    code = "ORDER_WINDOW_EXPIRED"
    http_status = 400


class OrderValidationError(OrderError):
    """Raised on malformed checkout input (items, prices, address)."""

    code = "ORDER_VALIDATION_FAILED"
    http_status = 400


class ConcurrentOrderUpdateError(OrderError):
    """Raised when another writer changed the order between guard and write."""

    code = "ORDER_CONCURRENT_UPDATE"
    http_status = 409
