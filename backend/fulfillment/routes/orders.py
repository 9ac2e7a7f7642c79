# Overview: Flask API routes for order creation and lookup; parses input and returns JSON responses.

"""
Order API Routes

DESIGN:
- POST creates an order in one atomic unit (stock, credit, order, audit)
- GET returns the persisted order with its item snapshots
- Typed failures map to their HTTP status with a structured body

SECURITY:
- Creating orders requires the admin or sale role
- Reading an order requires any known role
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..actor import ROLE_ADMIN, ROLE_SALE
from ..decorators import require_actor, require_role
from ..errors import FulfillmentError
from ..services import fulfillment_service
from ..validation import parse_order_payload


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_actor
@require_role(ROLE_ADMIN, ROLE_SALE)
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "code": "ORD-2024-001",  (optional, synthesized when omitted)
        "partner_id": 1,
        "warehouse_id": 1,
        "staff_id": "u-7",  (optional, defaults to the acting user)
        "items": [{"product_id": 1, "quantity": 2, "price": "100.00"}],
        "note": "..."  (optional)
    }

    Returns:
        201: {"order": {...}}
        400: Invalid input
        403: Partner locked / role not allowed
        404: Partner, warehouse or product not found
        409: Code already exists
        422: Debt limit exceeded or insufficient stock
    """
    try:
        order_request = parse_order_payload(request.get_json(silent=True))
        order = fulfillment_service.create_order(order_request, actor=g.actor)
        return jsonify({"order": order.to_dict()}), 201

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_actor
def get_order_route(order_id: int):
    try:
        order = fulfillment_service.get_order(order_id)
        return jsonify({"order": order.to_dict()}), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get order")
        return jsonify({"error": "Internal server error"}), 500
