from typing import Optional


class OrderError(Exception):
    """Base class for errors that map onto an API envelope."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(OrderError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(OrderError):
    status_code = 401
    default_message = "Invalid authentication credentials"


class ForbiddenError(OrderError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(OrderError):
    status_code = 404
    default_message = "Order not found"


class ConflictError(OrderError):
    """A store uniqueness constraint rejected the write.

    ``constraint`` names the violated key so callers can decide whether to
    retry with a new order number or replay an idempotent match.
    """

    status_code = 409
    default_message = "Conflicting order write"

    ORDER_NUMBER = "order_number"
    CLIENT_REQUEST_ID = "client_request_id"

    def __init__(self, constraint: str, message: Optional[str] = None):
        self.constraint = constraint
        super().__init__(message)


class StoreError(OrderError):
    status_code = 500
    default_message = "Order store failure"
