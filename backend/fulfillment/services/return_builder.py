"""
Return Aggregate Builder

Mirror of the order builder: validates a return request, computes
total_refund = sum(quantity * refund_price_cents) and snapshots product
name/SKU onto each return line.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import ValidationError
from ..models import Order, Return
from .order_builder import (
    _is_int,
    ensure_total_in_range,
    resolve_code,
    snapshot_products,
    sum_quantities,
    validate_line_shape,
)

RETURN_DOCUMENT_TYPE = "RETURN"


@dataclass(frozen=True)
class ReturnLineRequest:
    product_id: int
    quantity: int
    refund_price_cents: int


@dataclass(frozen=True)
class ReturnRequest:
    order_id: int
    partner_id: int
    items: tuple[ReturnLineRequest, ...]
    code: str | None = None
    reason: str | None = None
    staff_id: str | None = None


@dataclass
class ReturnLineDraft:
    position: int
    product_id: int
    product_name: str
    product_sku: str
    quantity: int
    refund_price_cents: int

    @property
    def line_refund_cents(self) -> int:
        return self.quantity * self.refund_price_cents


@dataclass
class ReturnDraft:
    order_id: int
    partner_id: int
    staff_id: str | None
    reason: str | None
    code: str | None
    lines: list[ReturnLineDraft] = field(default_factory=list)

    @property
    def total_refund_cents(self) -> int:
        return sum(line.line_refund_cents for line in self.lines)

    def quantities_by_product(self) -> list[tuple[int, int]]:
        return sum_quantities(self.lines)


def validate_return_request(request: ReturnRequest) -> None:
    if not _is_int(request.order_id) or request.order_id <= 0:
        raise ValidationError("order_id must be a positive integer")
    if not _is_int(request.partner_id) or request.partner_id <= 0:
        raise ValidationError("partner_id must be a positive integer")
    if not request.items:
        raise ValidationError("Return must contain at least one item")
    for i, item in enumerate(request.items):
        validate_line_shape(
            item.product_id, item.quantity, item.refund_price_cents,
            index=i, price_field="refund_price",
        )
    if request.code is not None and not str(request.code).strip():
        raise ValidationError("code must not be blank")


def build_return(request: ReturnRequest, *, staff_id: str | None = None) -> ReturnDraft:
    validate_return_request(request)
    products = snapshot_products(item.product_id for item in request.items)

    draft = ReturnDraft(
        order_id=request.order_id,
        partner_id=request.partner_id,
        staff_id=request.staff_id or staff_id,
        reason=request.reason,
        code=request.code.strip() if request.code else None,
    )
    for position, item in enumerate(request.items, start=1):
        product = products[item.product_id]
        draft.lines.append(
            ReturnLineDraft(
                position=position,
                product_id=product.id,
                product_name=product.name,
                product_sku=product.sku,
                quantity=item.quantity,
                refund_price_cents=item.refund_price_cents,
            )
        )
    ensure_total_in_range(draft.total_refund_cents, "total_refund_cents")
    return draft


def check_against_order(draft: ReturnDraft, order: Order) -> None:
    """
    Every returned product must appear on the original order, and no more
    units may come back than were sold.
    """
    sold: dict[int, int] = {}
    for item in order.items:
        sold[item.product_id] = sold.get(item.product_id, 0) + item.quantity

    for product_id, quantity in draft.quantities_by_product():
        if product_id not in sold:
            raise ValidationError(
                f"Product {product_id} is not on order {order.code}",
                details={"product_id": product_id, "order_id": order.id},
            )
        if quantity > sold[product_id]:
            raise ValidationError(
                f"Cannot return {quantity} units of product {product_id}; "
                f"order {order.code} only had {sold[product_id]}",
                details={
                    "product_id": product_id,
                    "requested": quantity,
                    "sold": sold[product_id],
                },
            )


def assign_return_code(draft: ReturnDraft, prefix: str) -> str:
    draft.code = resolve_code(Return, draft.code, document_type=RETURN_DOCUMENT_TYPE, prefix=prefix)
    return draft.code
