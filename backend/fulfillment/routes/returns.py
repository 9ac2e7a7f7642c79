# Overview: Flask API routes for returns against completed orders.

"""
Return Processing API Routes

A return restocks the order's warehouse, reduces the partner's debt by the
refund and marks the original order as returned, all in one unit of work.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..actor import ROLE_ADMIN, ROLE_SALE, ROLE_WAREHOUSE
from ..decorators import require_actor, require_role
from ..errors import FulfillmentError
from ..services import fulfillment_service
from ..validation import parse_return_payload


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.post("")
@require_actor
@require_role(ROLE_ADMIN, ROLE_SALE, ROLE_WAREHOUSE)
def create_return_route():
    """
    Create a return.

    Request body:
    {
        "code": "RET-001",  (optional)
        "order_id": 10,
        "partner_id": 1,
        "reason": "Damaged",  (optional)
        "items": [{"product_id": 1, "quantity": 2, "refund_price": "100.00"}]
    }

    Returns:
        201: {"return": {...}}
        400: Invalid input / product not on the order
        404: Order or partner not found
        409: Code already exists or order already returned
    """
    try:
        return_request = parse_return_payload(request.get_json(silent=True))
        return_doc = fulfillment_service.create_return(return_request, actor=g.actor)
        return jsonify({"return": return_doc.to_dict()}), 201

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("/<int:return_id>")
@require_actor
def get_return_route(return_id: int):
    try:
        return_doc = fulfillment_service.get_return(return_id)
        return jsonify({"return": return_doc.to_dict()}), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get return")
        return jsonify({"error": "Internal server error"}), 500
