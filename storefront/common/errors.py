from typing import Any, Dict, Optional


class StoreError(Exception):
    """Base for errors that are reported to API callers."""

    code = "STORE_ERROR"
    http_status = 400
    default_message = "request failed"

    def __init__(self, message: Optional[str] = None, **details: Any) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        payload = {"success": False, "error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(StoreError):
    code = "VALIDATION_ERROR"
    default_message = "invalid request"


class InvalidQuantityError(ValidationError):
    code = "INVALID_QUANTITY"
    default_message = "quantity must be >= 1"


class InvalidAddressError(StoreError):
    code = "INVALID_ADDRESS"
    default_message = "address not found"


class EmptyCartError(StoreError):
    code = "EMPTY_CART"
    default_message = "cart is empty"


class InsufficientStockError(StoreError):
    code = "INSUFFICIENT_STOCK"
    default_message = "insufficient stock"


class NotFoundError(StoreError):
    code = "NOT_FOUND"
    http_status = 404
    default_message = "not found"


class ForbiddenError(StoreError):
    code = "FORBIDDEN"
    http_status = 403
    default_message = "forbidden"


class UnauthenticatedError(StoreError):
    code = "UNAUTHENTICATED"
    http_status = 401
    default_message = "authentication required"


class ConflictError(StoreError):
    code = "CONFLICT"
    http_status = 409
    default_message = "resource was modified concurrently"


class InvalidTransitionError(ConflictError):
    code = "INVALID_TRANSITION"
    default_message = "invalid status transition"


class OrderNumberConflictError(ConflictError):
    """Raised when a freshly generated order number collides twice in a row."""

    code = "ORDER_NUMBER_CONFLICT"
    http_status = 500
    default_message = "could not allocate an order number"
