# Overview: Flask API routes for partner master data.

from flask import Blueprint, request, jsonify, g, current_app

from ..actor import ROLE_ADMIN, ROLE_ACCOUNTANT
from ..decorators import require_actor, require_role
from ..errors import FulfillmentError, ValidationError
from ..models import Partner
from ..services import partner_service
from ..validation import PARTNER_POLICY, validate_payload


partners_bp = Blueprint("partners", __name__, url_prefix="/api/partners")


@partners_bp.post("")
@require_actor
@require_role(ROLE_ADMIN, ROLE_ACCOUNTANT)
def create_partner_route():
    """
    Create a partner.

    Request body: {code, name, type?, phone?, email?, address?, debt_limit?}
    debt_limit is a decimal amount; omitted means the configured default.
    """
    try:
        patch = validate_payload(
            model=Partner,
            payload=request.get_json(silent=True),
            policy=PARTNER_POLICY,
            partial=False,
        )
        partner = partner_service.create_partner(patch=patch, actor=g.actor)
        return jsonify({"partner": partner.to_dict()}), 201

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create partner")
        return jsonify({"error": "Internal server error"}), 500


@partners_bp.get("/<int:partner_id>")
@require_actor
def get_partner_route(partner_id: int):
    try:
        partner = partner_service.get_partner(partner_id)
        return jsonify({"partner": partner.to_dict()}), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get partner")
        return jsonify({"error": "Internal server error"}), 500


@partners_bp.patch("/<int:partner_id>")
@require_actor
@require_role(ROLE_ADMIN, ROLE_ACCOUNTANT)
def update_partner_route(partner_id: int):
    """
    Edit a partner.

    Request body: any of {code, name, type, phone, email, address, debt_limit}
    Balances are not writable; status uses PATCH /<id>/status.
    """
    try:
        patch = validate_payload(
            model=Partner,
            payload=request.get_json(silent=True),
            policy=PARTNER_POLICY,
            partial=True,
        )
        partner = partner_service.update_partner(partner_id, patch, actor=g.actor)
        return jsonify({"partner": partner.to_dict()}), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update partner")
        return jsonify({"error": "Internal server error"}), 500


@partners_bp.patch("/<int:partner_id>/status")
@require_actor
@require_role(ROLE_ADMIN)
def set_partner_status_route(partner_id: int):
    """
    Lock or unlock a partner.

    Request body: {"status": "locked" | "active"}
    """
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not isinstance(status, str):
            raise ValidationError("status required")

        partner = partner_service.set_partner_status(partner_id, status.strip().lower(), actor=g.actor)
        return jsonify({"partner": partner.to_dict()}), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change partner status")
        return jsonify({"error": "Internal server error"}), 500
