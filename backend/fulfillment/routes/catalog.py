# Overview: Flask API routes for warehouses and products.

"""
Catalog management routes.

SECURITY:
- Warehouses: admin only
- Products: admin or warehouse role
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..actor import ROLE_ADMIN, ROLE_WAREHOUSE
from ..decorators import require_actor, require_role
from ..errors import FulfillmentError, ValidationError
from ..models import Product, Warehouse
from ..models.inventory import MAX_QUANTITY
from ..services import catalog_service, inventory_service
from ..validation import PRODUCT_POLICY, WAREHOUSE_POLICY, coerce_int, validate_payload

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


def _parse_inventory(raw) -> list[tuple[int, int]]:
    """[{warehouse_id, quantity}, ...] -> [(warehouse_id, quantity), ...]"""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("inventory must be a list")

    seen = set()
    rows = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"inventory[{i}] must be an object")
        warehouse_id = coerce_int(entry.get("warehouse_id"), f"inventory[{i}].warehouse_id")
        quantity = coerce_int(entry.get("quantity", 0), f"inventory[{i}].quantity")
        if quantity < 0:
            raise ValidationError(f"inventory[{i}].quantity must be >= 0")
        if quantity > MAX_QUANTITY:
            raise ValidationError(f"inventory[{i}].quantity must be <= {MAX_QUANTITY}")
        if warehouse_id in seen:
            raise ValidationError(f"inventory lists warehouse {warehouse_id} twice")
        seen.add(warehouse_id)
        rows.append((warehouse_id, quantity))
    return rows


@catalog_bp.post("/warehouses")
@require_actor
@require_role(ROLE_ADMIN)
def create_warehouse_route():
    try:
        patch = validate_payload(
            model=Warehouse,
            payload=request.get_json(silent=True),
            policy=WAREHOUSE_POLICY,
            partial=False,
        )
        warehouse = catalog_service.create_warehouse(patch=patch, actor=g.actor)
        return jsonify({"warehouse": warehouse.to_dict()}), 201

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create warehouse")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.post("/products")
@require_actor
@require_role(ROLE_ADMIN, ROLE_WAREHOUSE)
def create_product_route():
    """
    Create a product with optional initial stock.

    Request body:
    {
        "sku": "SKU-1", "name": "Widget", "retail_price": "100.00",
        "inventory": [{"warehouse_id": 1, "quantity": 5}]  (optional)
    }
    """
    try:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        payload = dict(payload)
        inventory = _parse_inventory(payload.pop("inventory", None))

        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        product = catalog_service.create_product(patch=patch, inventory=inventory, actor=g.actor)

        stock = {
            str(warehouse_id): inventory_service.get_quantity(product.id, warehouse_id)
            for warehouse_id, _ in inventory
        }
        return jsonify({"product": product.to_dict(), "inventory": stock}), 201

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.patch("/products/<int:product_id>")
@require_actor
@require_role(ROLE_ADMIN, ROLE_WAREHOUSE)
def update_product_route(product_id: int):
    """Edit name/sku/prices. Existing order and return items keep their snapshot."""
    try:
        patch = validate_payload(
            model=Product,
            payload=request.get_json(silent=True),
            policy=PRODUCT_POLICY,
            partial=True,
        )
        product = catalog_service.update_product(product_id=product_id, patch=patch, actor=g.actor)
        return jsonify({"product": product.to_dict()}), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/products/<int:product_id>")
@require_actor
def get_product_route(product_id: int):
    """Single product with its stock per warehouse."""
    try:
        product = catalog_service.get_product(product_id)
        stock = {str(r.warehouse_id): r.quantity for r in product.inventory_records}
        return jsonify({"product": product.to_dict(), "inventory": stock}), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get product")
        return jsonify({"error": "Internal server error"}), 500
