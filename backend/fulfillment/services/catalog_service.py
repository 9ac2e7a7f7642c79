# Overview: Warehouse and product master data, including initial stock.
"""
Catalog Service

Product edits only touch the products table. Order and return items keep
the name/SKU snapshot taken when they were created.
"""
from __future__ import annotations

import logging

from ..actor import Actor, SYSTEM_ACTOR
from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, Warehouse
from . import activity_service, inventory_service
from .concurrency import atomic_unit

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {
    "sku", "name", "brand", "unit", "cost_price_cents", "retail_price_cents", "is_active",
}
WAREHOUSE_MUTABLE_FIELDS = {"code", "name", "address"}


def _apply_patch(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(obj, k, v)


def create_warehouse(*, patch: dict, actor: Actor | None = None) -> Warehouse:
    actor = actor or SYSTEM_ACTOR
    code = patch.get("code")
    if not code:
        raise ValidationError("code is required")

    with atomic_unit("create_warehouse"):
        if db.session.query(Warehouse.id).filter_by(code=code).first() is not None:
            raise ConflictError(f"Warehouse code '{code}' already exists", details={"code": code})

        w = Warehouse()
        _apply_patch(w, patch, WAREHOUSE_MUTABLE_FIELDS)
        db.session.add(w)
        db.session.flush()

        activity_service.append_activity(
            actor_id=actor.user_id,
            action="CREATE_WAREHOUSE",
            entity_type="warehouses",
            entity_id=w.id,
            details={"code": w.code},
        )

    logger.info("Warehouse %s created (id=%s)", w.code, w.id)
    return w


def _sku_taken(sku: str, *, exclude_id: int | None = None) -> bool:
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


def create_product(
    *,
    patch: dict,
    inventory: list[tuple[int, int]] | None = None,
    actor: Actor | None = None,
) -> Product:
    """
    Create a product, optionally seeding stock per warehouse.

    Args:
        patch: validated product fields (sku, name, prices in cents, ...)
        inventory: (warehouse_id, quantity) pairs received in the same unit

    Raises:
        ConflictError: SKU already exists
        NotFoundError: an inventory warehouse does not exist
    """
    actor = actor or SYSTEM_ACTOR
    sku = patch.get("sku")
    if not sku:
        raise ValidationError("sku is required")

    with atomic_unit("create_product"):
        if _sku_taken(sku):
            raise ConflictError("SKU already exists.", details={"sku": sku})

        p = Product()
        _apply_patch(p, patch, PRODUCT_MUTABLE_FIELDS)
        db.session.add(p)
        db.session.flush()  # ensure p.id exists before stock rows and activity entry

        seeded = {}
        for warehouse_id, quantity in sorted(inventory or []):
            if quantity == 0:
                continue
            seeded[warehouse_id] = inventory_service.receive_stock(p.id, warehouse_id, quantity)

        activity_service.append_activity(
            actor_id=actor.user_id,
            action="CREATE_PRODUCT",
            entity_type="products",
            entity_id=p.id,
            details={"sku": p.sku, "name": p.name, "inventory": {str(k): v for k, v in seeded.items()}},
        )

    logger.info("Product %s created (id=%s, warehouses=%s)", p.sku, p.id, sorted(seeded))
    return p


def update_product(*, product_id: int, patch: dict, actor: Actor | None = None) -> Product:
    """
    Edit product master data. Historical order/return items are unaffected.

    Raises:
        NotFoundError: unknown product
        ConflictError: new SKU belongs to another product
    """
    actor = actor or SYSTEM_ACTOR

    with atomic_unit("update_product"):
        p = db.session.get(Product, product_id)
        if p is None:
            raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})

        new_sku = patch.get("sku")
        if new_sku and new_sku != p.sku and _sku_taken(new_sku, exclude_id=p.id):
            raise ConflictError("SKU already exists.", details={"sku": new_sku})

        changed = sorted(k for k, v in patch.items() if k in PRODUCT_MUTABLE_FIELDS and getattr(p, k) != v)
        _apply_patch(p, patch, PRODUCT_MUTABLE_FIELDS)
        db.session.flush()

        if changed:
            activity_service.append_activity(
                actor_id=actor.user_id,
                action="UPDATE_PRODUCT",
                entity_type="products",
                entity_id=p.id,
                details={"sku": p.sku, "fields": changed},
            )

    return p


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
    return p
