"""Domain errors raised by the auth and order cores.

Every error carries an HTTP status, a stable machine code and an optional
payload; `app.main` renders them as ``{"detail": {"code", "message", ...}}``.
"""
from __future__ import annotations

import uuid
from typing import Any, Optional


class ShopError(Exception):
    """Base exception for all application errors."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "An internal error occurred", payload: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}

    def to_dict(self) -> dict[str, Any]:
        rv = dict(self.payload)
        rv["code"] = self.code
        rv["message"] = self.message
        return rv


class InvalidRequest(ShopError):
    status_code = 400
    code = "invalid_request"

    def __init__(self, message: str = "Invalid request", payload: Optional[dict[str, Any]] = None):
        super().__init__(message, payload)


class Unauthenticated(ShopError):
    status_code = 401
    code = "unauthenticated"

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class InvalidCredentials(ShopError):
    """Wrong password and unknown email both surface as this error."""

    status_code = 401
    code = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid email or password.")


class PermissionDenied(ShopError):
    status_code = 403
    code = "forbidden"

    def __init__(self, message: str = "You do not have permission to perform this action."):
        super().__init__(message)


class DuplicateIdentity(ShopError):
    status_code = 409
    code = "duplicate_identity"

    def __init__(self):
        super().__init__("A user with this email already exists.")


class ProductNotFound(ShopError):
    status_code = 404
    code = "product_not_found"

    def __init__(self, product_id: uuid.UUID):
        super().__init__(f"Product {product_id} not found.", {"product_id": str(product_id)})
        self.product_id = product_id


class OrderNotFound(ShopError):
    status_code = 404
    code = "order_not_found"

    def __init__(self, order_id: uuid.UUID):
        super().__init__(f"Order {order_id} not found.", {"order_id": str(order_id)})
        self.order_id = order_id


class InsufficientStock(ShopError):
    status_code = 409
    code = "insufficient_stock"

    def __init__(self, product_id: uuid.UUID, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}.",
            {"product_id": str(product_id), "available": available, "requested": requested},
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class ConflictError(ShopError):
    """Stock changed between validation and commit; the whole order can be retried."""

    status_code = 409
    code = "conflict"

    def __init__(self, product_id: uuid.UUID, requested: int):
        super().__init__(
            f"Stock for product {product_id} changed while the order was being placed.",
            {"product_id": str(product_id), "requested": requested, "retryable": True},
        )
        self.product_id = product_id
        self.requested = requested


class StoreUnavailable(ShopError):
    status_code = 503
    code = "store_unavailable"

    def __init__(self, message: str = "The service is temporarily unavailable. Please retry."):
        super().__init__(message, {"retryable": True})
