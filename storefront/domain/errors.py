# storefront/domain/errors.py
from typing import Any


class StoreError(Exception):
    """Base class for errors that map onto an HTTP status and the error envelope."""

    status_code = 500
    code = "internal_error"
    default_message = "Oops! Something went wrong. We're on it!"

    def __init__(self, message: str | None = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_error(self) -> dict[str, Any]:
        return {"code": self.code, **self.details}


class ValidationError(StoreError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class EmptyCartError(ValidationError):
    code = "empty_cart"
    default_message = "Cart is empty"


class UnauthorizedError(StoreError):
    status_code = 401
    code = "unauthorized"
    default_message = "User not authenticated"


class ForbiddenError(StoreError):
    status_code = 403
    code = "forbidden"
    default_message = "Access denied"


class NotFoundError(StoreError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class InsufficientStockError(StoreError):
    status_code = 409
    code = "insufficient_stock"

    def __init__(self, product_id: int, product_name: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {product_name}",
            product_id=product_id,
            product_name=product_name,
            requested=requested,
            available=available,
        )


class InvalidTransitionError(StoreError):
    status_code = 409
    code = "invalid_transition"

    def __init__(self, current: str, target: str, message: str | None = None):
        super().__init__(
            message or f"Cannot move order from {current} to {target}",
            current=current,
            target=target,
        )


class DuplicateReferenceError(StoreError):
    status_code = 409
    code = "duplicate_reference"
    default_message = "Reference already exists"


class InvalidSignatureError(StoreError):
    status_code = 400
    code = "invalid_signature"
    default_message = "Invalid signature"


class PaymentProviderError(StoreError):
    status_code = 502
    code = "payment_provider_error"
    default_message = "Payment provider request failed"
