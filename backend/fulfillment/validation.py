from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .money import to_cents
from .services.order_builder import OrderLineRequest, OrderRequest
from .services.return_builder import ReturnLineRequest, ReturnRequest


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - money_fields: decimal request keys mapped to their *_cents column
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    money_fields: dict[str, str] | None = None


PARTNER_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "type", "phone", "email", "address", "status", "debt_limit"},
    required_on_create={"code", "name"},
    money_fields={"debt_limit": "debt_limit_cents"},
)

WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "address"},
    required_on_create={"code", "name"},
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "name", "brand", "unit", "cost_price", "retail_price", "is_active"},
    required_on_create={"sku", "name"},
    money_fields={"cost_price": "cost_price_cents", "retail_price": "retail_price_cents"},
)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """Strict integer parsing: rejects floats, bools, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    money_fields = policy.money_fields or {}

    patch: dict = {}
    for k, raw in payload.items():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")

        if k in money_fields:
            column_key = money_fields[k]
            if raw is None:
                if not cols[column_key].nullable:
                    raise ValidationError(f"{k} cannot be null")
                patch[column_key] = None
            else:
                patch[column_key] = to_cents(raw, k)
            continue

        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


# =============================================================================
# ORDER / RETURN REQUEST PARSING
# =============================================================================

def _require_dict(payload) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _optional_str(data: dict, key: str, max_length: int | None = None) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    value = str(value).strip()
    if max_length and len(value) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return value or None


def _items(data: dict) -> list[dict]:
    items = data.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{i}] must be an object")
    return items


def _required_int(data: dict, key: str) -> int:
    if data.get(key) is None:
        raise ValidationError(f"{key} required")
    return coerce_int(data[key], key)


def parse_order_payload(payload) -> OrderRequest:
    """
    {code?, partner_id, warehouse_id, staff_id?, items: [{product_id, quantity, price}], note?}
    """
    data = _require_dict(payload)
    lines = []
    for i, item in enumerate(_items(data)):
        if item.get("price") is None:
            raise ValidationError(f"items[{i}].price required")
        lines.append(OrderLineRequest(
            product_id=_required_int(item, "product_id"),
            quantity=_required_int(item, "quantity"),
            unit_price_cents=to_cents(item["price"], f"items[{i}].price"),
        ))
    return OrderRequest(
        partner_id=_required_int(data, "partner_id"),
        warehouse_id=_required_int(data, "warehouse_id"),
        items=tuple(lines),
        code=_optional_str(data, "code", 64),
        staff_id=_optional_str(data, "staff_id", 64),
        note=_optional_str(data, "note"),
    )


def parse_return_payload(payload) -> ReturnRequest:
    """
    {code?, order_id, partner_id, reason?, items: [{product_id, quantity, refund_price}]}
    """
    data = _require_dict(payload)
    lines = []
    for i, item in enumerate(_items(data)):
        if item.get("refund_price") is None:
            raise ValidationError(f"items[{i}].refund_price required")
        lines.append(ReturnLineRequest(
            product_id=_required_int(item, "product_id"),
            quantity=_required_int(item, "quantity"),
            refund_price_cents=to_cents(item["refund_price"], f"items[{i}].refund_price"),
        ))
    return ReturnRequest(
        order_id=_required_int(data, "order_id"),
        partner_id=_required_int(data, "partner_id"),
        items=tuple(lines),
        code=_optional_str(data, "code", 64),
        reason=_optional_str(data, "reason"),
    )
