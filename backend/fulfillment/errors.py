"""
Typed failures raised by the fulfillment services.

Every failure that can abort an order or return transaction is one of these.
Routes map them to HTTP responses via ``status_code``; ``details`` is always
JSON-serializable so it can be returned to the caller verbatim.
"""

from __future__ import annotations

from decimal import Decimal

from .money import format_cents


class FulfillmentError(Exception):
    """Base class for typed business and storage failures."""
    kind = "error"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind, "details": self.details}


class ValidationError(FulfillmentError):
    """Malformed request payload."""
    kind = "validation"
    status_code = 400


class NotFoundError(FulfillmentError):
    kind = "not_found"
    status_code = 404


class ForbiddenError(FulfillmentError):
    """Locked partner, or the acting role may not perform the operation."""
    kind = "forbidden"
    status_code = 403


class ConflictError(FulfillmentError):
    """Duplicate order/return/partner/product code, or an already-returned order."""
    kind = "conflict"
    status_code = 409


class LimitExceededError(FulfillmentError):
    kind = "limit_exceeded"
    status_code = 422

    def __init__(self, partner_id: int, current_cents: int, attempted_cents: int, limit_cents: int):
        self.partner_id = partner_id
        self.current_cents = current_cents
        self.attempted_cents = attempted_cents
        self.limit_cents = limit_cents
        super().__init__(
            f"Debt limit exceeded. Current debt: {format_cents(current_cents)}, "
            f"this order: {format_cents(attempted_cents)}, limit: {format_cents(limit_cents)}",
            details={
                "partner_id": partner_id,
                "current_debt_cents": current_cents,
                "attempted_cents": attempted_cents,
                "debt_limit_cents": limit_cents,
            },
        )

    @property
    def current(self) -> Decimal:
        return Decimal(self.current_cents) / 100

    @property
    def attempted(self) -> Decimal:
        return Decimal(self.attempted_cents) / 100

    @property
    def limit(self) -> Decimal:
        return Decimal(self.limit_cents) / 100


class InsufficientStockError(FulfillmentError):
    kind = "insufficient_stock"
    status_code = 422

    def __init__(
        self,
        *,
        product_id: int,
        warehouse_id: int,
        available: int,
        requested: int,
        product_name: str | None = None,
    ):
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        self.available = available
        self.requested = requested
        self.product_name = product_name
        label = product_name or f"#{product_id}"
        super().__init__(
            f'Product "{label}" does not have enough stock in warehouse {warehouse_id} '
            f"(available: {available}, requested: {requested})",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "warehouse_id": warehouse_id,
                "available": available,
                "requested": requested,
            },
        )


class StorageError(FulfillmentError):
    """Unexpected persistence failure; the unit of work was rolled back."""
    kind = "storage"
    status_code = 500
