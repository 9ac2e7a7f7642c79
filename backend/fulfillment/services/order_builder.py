"""
Order Aggregate Builder

WHY: Turns a validated order request into an unpersisted order header plus
line items. Product identity (name, SKU) is copied onto each line here so a
later rename or re-SKU never changes a historical order.

Totals use integer cents only: total = sum(quantity * unit_price_cents).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Order, Product, Warehouse
from ..models.inventory import MAX_QUANTITY
from ..money import MAX_AMOUNT_CENTS
from .document_service import next_document_number

ORDER_DOCUMENT_TYPE = "ORDER"

# Bounded skip over sequence numbers already taken by caller-supplied codes
_MAX_CODE_ATTEMPTS = 50


@dataclass(frozen=True)
class OrderLineRequest:
    product_id: int
    quantity: int
    unit_price_cents: int


@dataclass(frozen=True)
class OrderRequest:
    partner_id: int
    warehouse_id: int
    items: tuple[OrderLineRequest, ...]
    code: str | None = None
    staff_id: str | None = None
    note: str | None = None


@dataclass
class LineDraft:
    position: int
    product_id: int
    product_name: str
    product_sku: str
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


@dataclass
class OrderDraft:
    partner_id: int
    warehouse_id: int
    staff_id: str | None
    note: str | None
    code: str | None
    lines: list[LineDraft] = field(default_factory=list)

    @property
    def total_amount_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    def quantities_by_product(self) -> list[tuple[int, int]]:
        """Requested quantity per product, ascending by product id."""
        return sum_quantities(self.lines)


def sum_quantities(lines) -> list[tuple[int, int]]:
    totals: dict[int, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return sorted(totals.items())


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_line_shape(product_id, quantity, price_cents, *, index: int, price_field: str) -> None:
    if not _is_int(product_id) or product_id <= 0:
        raise ValidationError(f"items[{index}].product_id must be a positive integer")
    if not _is_int(quantity) or quantity < 1:
        raise ValidationError(f"items[{index}].quantity must be an integer >= 1")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"items[{index}].quantity must be <= {MAX_QUANTITY}")
    if not _is_int(price_cents) or price_cents < 0:
        raise ValidationError(f"items[{index}].{price_field} must be >= 0")


def validate_order_request(request: OrderRequest) -> None:
    if not _is_int(request.partner_id) or request.partner_id <= 0:
        raise ValidationError("partner_id must be a positive integer")
    if not _is_int(request.warehouse_id) or request.warehouse_id <= 0:
        raise ValidationError("warehouse_id must be a positive integer")
    if not request.items:
        raise ValidationError("Order must contain at least one item")
    for i, item in enumerate(request.items):
        validate_line_shape(item.product_id, item.quantity, item.unit_price_cents, index=i, price_field="price")
    if request.code is not None and not str(request.code).strip():
        raise ValidationError("code must not be blank")


def snapshot_products(product_ids, *, require_active: bool = False) -> dict[int, Product]:
    """
    Load the current products for snapshotting; every id must exist.

    require_active rejects deactivated products (new sales). Returns still
    accept them since the goods were sold while the product was active.
    """
    ids = sorted(set(product_ids))
    products = {p.id: p for p in db.session.query(Product).filter(Product.id.in_(ids)).all()}
    missing = [pid for pid in ids if pid not in products]
    if missing:
        raise NotFoundError(
            f"Product {missing[0]} not found",
            details={"product_ids": missing},
        )
    if require_active:
        inactive = [pid for pid in ids if not products[pid].is_active]
        if inactive:
            raise ValidationError(
                f"Product {products[inactive[0]].name} is inactive and cannot be sold",
                details={"product_ids": inactive},
            )
    return products


def ensure_total_in_range(total_cents: int, field: str) -> None:
    if total_cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} is too large", details={field: total_cents})


def build_order(request: OrderRequest, *, staff_id: str | None = None) -> OrderDraft:
    """Validate the request and snapshot products into an unpersisted draft."""
    validate_order_request(request)
    if db.session.get(Warehouse, request.warehouse_id) is None:
        raise NotFoundError(
            f"Warehouse {request.warehouse_id} not found",
            details={"warehouse_id": request.warehouse_id},
        )
    products = snapshot_products((item.product_id for item in request.items), require_active=True)

    draft = OrderDraft(
        partner_id=request.partner_id,
        warehouse_id=request.warehouse_id,
        staff_id=request.staff_id or staff_id,
        note=request.note,
        code=request.code.strip() if request.code else None,
    )
    for position, item in enumerate(request.items, start=1):
        product = products[item.product_id]
        draft.lines.append(
            LineDraft(
                position=position,
                product_id=product.id,
                product_name=product.name,
                product_sku=product.sku,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
            )
        )
    ensure_total_in_range(draft.total_amount_cents, "total_amount_cents")
    return draft


def resolve_code(model, code: str | None, *, document_type: str, prefix: str) -> str:
    """
    Return a code that is free for ``model``.

    A caller-supplied code that is already used raises ConflictError.
    Synthesized codes skip numbers that a caller already claimed.
    """
    if code:
        if db.session.query(model.id).filter_by(code=code).first() is not None:
            raise ConflictError(
                f"{model.__name__} code '{code}' already exists",
                details={"code": code},
            )
        return code

    for _ in range(_MAX_CODE_ATTEMPTS):
        candidate = next_document_number(document_type=document_type, prefix=prefix)
        if db.session.query(model.id).filter_by(code=candidate).first() is None:
            return candidate
    raise ConflictError(
        f"Could not allocate a free {model.__name__} code",
        details={"document_type": document_type},
    )


def assign_order_code(draft: OrderDraft, prefix: str) -> str:
    draft.code = resolve_code(Order, draft.code, document_type=ORDER_DOCUMENT_TYPE, prefix=prefix)
    return draft.code
