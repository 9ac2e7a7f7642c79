# Overview: Per-(product, warehouse) quantity counters with guarded mutations.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryRecord, Product, Warehouse
from ..models.inventory import MAX_QUANTITY
from .concurrency import lock_for_update
"""
Inventory invariants (authoritative)

- One InventoryRecord per (product, warehouse); a missing row means zero.
- quantity never goes below zero. Every decrement is a single guarded
  UPDATE (... WHERE quantity >= :requested) executed after a locked read in
  the same unit of work, so a concurrent writer can never slip between the
  check and the decrement.
- Each reserve/release touches exactly one row; there is no cross-warehouse
  fallback and no reservation queue.
- None of these functions commit. They run inside the caller's atomic unit.
"""


def _require_positive(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer", details={"quantity": quantity})
    if quantity > MAX_QUANTITY:
        raise ValidationError(
            f"quantity must be <= {MAX_QUANTITY}",
            details={"quantity": quantity, "max": MAX_QUANTITY},
        )
    return quantity


def _record_query(product_id: int, warehouse_id: int):
    return db.session.query(InventoryRecord).filter_by(product_id=product_id, warehouse_id=warehouse_id)


def get_quantity(product_id: int, warehouse_id: int) -> int:
    """Current quantity for a pair; absent rows count as zero."""
    qty = (
        db.session.query(InventoryRecord.quantity)
        .filter_by(product_id=product_id, warehouse_id=warehouse_id)
        .scalar()
    )
    return int(qty or 0)


def check_and_reserve(
    product_id: int,
    warehouse_id: int,
    quantity: int,
    *,
    product_name: str | None = None,
) -> int:
    """
    Decrement stock if enough is available; return the remaining quantity.

    Raises InsufficientStockError carrying the available amount otherwise.
    """
    _require_positive(quantity)

    record = lock_for_update(_record_query(product_id, warehouse_id)).first()
    available = record.quantity if record is not None else 0
    if record is None or available < quantity:
        raise InsufficientStockError(
            product_id=product_id,
            warehouse_id=warehouse_id,
            available=available,
            requested=quantity,
            product_name=product_name,
        )

    result = db.session.execute(
        update(InventoryRecord)
        .where(
            InventoryRecord.id == record.id,
            InventoryRecord.quantity >= quantity,
        )
        .values(quantity=InventoryRecord.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    db.session.expire(record)
    if result.rowcount != 1:
        db.session.refresh(record)
        raise InsufficientStockError(
            product_id=product_id,
            warehouse_id=warehouse_id,
            available=record.quantity,
            requested=quantity,
            product_name=product_name,
        )

    return available - quantity


def _expire_cached(product_id: int, warehouse_id: int) -> None:
    for obj in list(db.session.identity_map.values()):
        if isinstance(obj, InventoryRecord) and obj.product_id == product_id and obj.warehouse_id == warehouse_id:
            db.session.expire(obj)


def _increment(product_id: int, warehouse_id: int, quantity: int) -> int:
    on_hand = get_quantity(product_id, warehouse_id)
    if on_hand + quantity > MAX_QUANTITY:
        raise ValidationError(
            f"stock would exceed {MAX_QUANTITY}",
            details={"on_hand": on_hand, "quantity": quantity, "max": MAX_QUANTITY},
        )
    stmt = (
        update(InventoryRecord)
        .where(
            InventoryRecord.product_id == product_id,
            InventoryRecord.warehouse_id == warehouse_id,
        )
        .values(quantity=InventoryRecord.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        try:
            with db.session.begin_nested():
                db.session.add(
                    InventoryRecord(product_id=product_id, warehouse_id=warehouse_id, quantity=quantity)
                )
        except IntegrityError:
            # Another unit created the row first
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
    _expire_cached(product_id, warehouse_id)
    return get_quantity(product_id, warehouse_id)


def release(product_id: int, warehouse_id: int, quantity: int) -> int:
    """
    Put stock back (return processing); return the new quantity.

    Not idempotent: the return coordinator calls it exactly once per item.
    """
    _require_positive(quantity)
    return _increment(product_id, warehouse_id, quantity)


def receive_stock(product_id: int, warehouse_id: int, quantity: int) -> int:
    """Add incoming stock (initial product stock, CLI seeding)."""
    _require_positive(quantity)
    if db.session.get(Product, product_id) is None:
        raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
    if db.session.get(Warehouse, warehouse_id) is None:
        raise NotFoundError(f"Warehouse {warehouse_id} not found", details={"warehouse_id": warehouse_id})
    return _increment(product_id, warehouse_id, quantity)
