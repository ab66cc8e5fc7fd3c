"""Domain error taxonomy shared by services, storage backends and routers."""
from typing import List, Optional


class StorefrontError(Exception):
    """Base class for every error surfaced to API callers."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(StorefrontError):
    """Malformed or out-of-range input, rejected before touching storage."""

    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = sorted(set(fields or []))

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["fields"] = self.fields
        return body


class NotFoundError(StorefrontError):
    """Missing product, or a cart item that is missing or owned by another session."""

    status_code = 404
    code = "not_found"


class BusinessRuleError(StorefrontError):
    status_code = 400
    code = "business_rule_violation"


class OutOfStockError(BusinessRuleError):
    code = "out_of_stock"


class QuantityLimitExceededError(BusinessRuleError):
    code = "quantity_limit_exceeded"


class EmptyCartError(BusinessRuleError):
    code = "empty_cart"


class CartLineLimitExceededError(BusinessRuleError):
    code = "cart_line_limit_exceeded"


class CartChangedError(StorefrontError):
    """A checked-out cart line was changed or removed before the order was written."""

    status_code = 409
    code = "cart_changed"


class ProductMissingError(StorefrontError):
    """A cart line references a product that vanished before the order was assembled."""

    status_code = 500
    code = "product_missing"


class StorageError(StorefrontError):
    """Backend failure. The message is generic; the cause is chained and logged."""

    status_code = 500
    code = "storage_error"


class AuthenticationError(StorefrontError):
    status_code = 401
    code = "unauthorized"


class ImageUploadError(StorefrontError):
    status_code = 502
    code = "image_upload_failed"
