"""Error taxonomy shared by every app.

Services raise these exceptions; the DRF exception handler in
``apps.common.responses`` turns them into the response envelope. Each kind
fixes the HTTP status, each concrete error fixes the machine-readable
``code`` and a human ``title``. ``errors`` optionally carries the raw
diagnostic (a pydantic error list, a database message, ...).

The module has no Django imports so domain code can raise these errors
without depending on the web framework.
"""

from typing import Any, Optional


class ApiError(Exception):
    """Base class for errors that are reported to API clients.

    Attributes:
        status: HTTP status code of the error kind.
        code: Stable machine-readable error code.
        title: Short human-readable summary.
        errors: Optional raw diagnostic attached to the response.
    """

    status = 500
    code = "InternalError"
    title = "Internal error"

    def __init__(self, title: Optional[str] = None, errors: Any = None):
        if title:
            self.title = title
        self.errors = errors
        super().__init__(self.title)


# ---- Kinds ----
class ValidationError(ApiError):
    status = 422
    code = "InvalidData"
    title = "Invalid data"


class NotFoundError(ApiError):
    status = 404
    code = "NotFound"
    title = "Not found"


class ConflictError(ApiError):
    status = 409
    code = "Conflict"
    title = "Conflict"


class UpstreamProcessingError(ApiError):
    status = 500
    code = "UpstreamProcessingFailed"
    title = "Upstream processing failed"


class PersistenceError(ApiError):
    status = 500
    code = "DatabaseQueryFailed"
    title = "Database query failed"


class RejectedRequestError(ApiError):
    status = 400
    code = "InvalidRequest"
    title = "Invalid request"


# ---- Validation ----
class OrderDataInvalid(ValidationError):
    code = "OrderDataInvalid"


class OrderPaymentDataInvalid(ValidationError):
    code = "OrderPaymentDataInvalid"


class CouponDataInvalid(ValidationError):
    code = "CouponDataInvalid"


# ---- Not found ----
class PaymentMethodNotFound(NotFoundError):
    code = "PaymentMethodNotFound"
    title = "Payment method not found"


class ShippingMethodNotFound(NotFoundError):
    code = "ShippingMethodNotFound"
    title = "Shipping method not found"


class ProductUnavailable(NotFoundError):
    code = "ProductUnavailable"
    title = "Product unavailable"


class ProductNotFound(NotFoundError):
    code = "ProductNotFound"
    title = "Product not found"


class OrderNotFound(NotFoundError):
    code = "OrderNotFound"
    title = "Order not found"


class CouponNotFound(NotFoundError):
    code = "CouponNotFound"
    title = "Coupon not found"


# ---- Conflict ----
class CouponAlreadyExists(ConflictError):
    code = "CouponAlreadyExists"
    title = "Coupon already exists"


class OrderAlreadyPaid(ConflictError):
    code = "OrderAlreadyPaid"
    title = "Order is already paid"


class IdempotencyConflict(ConflictError):
    code = "IdempotencyConflict"
    title = "Idempotency key reused with a different payload"


# ---- Upstream ----
class PaymentProcessingFailed(UpstreamProcessingError):
    code = "PaymentProcessingFailed"
    title = "Failed to process payment"


# ---- Persistence ----
class PaymentNotRecorded(PersistenceError):
    code = "PaymentNotRecorded"
    title = "Payment captured but not recorded"
