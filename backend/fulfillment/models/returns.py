from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z

RETURN_STATUS_COMPLETED = "completed"


class Return(db.Model):
    """
    Return document referencing an original order.

    Created atomically with the matching inventory increments, the partner
    debt reduction and the original order's move to ``returned``.
    """
    __tablename__ = "returns"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True, index=True)

    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False, index=True)
    # Stock goes back to the warehouse the order shipped from
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    staff_id = db.Column(db.String(64), nullable=True)

    total_refund_cents = db.Column(db.BigInteger, nullable=False)
    reason = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=RETURN_STATUS_COMPLETED)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("returns", lazy=True))
    partner = db.relationship("Partner")
    items = db.relationship(
        "ReturnItem",
        back_populates="return_doc",
        order_by="ReturnItem.position",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Return id={self.id} code={self.code!r} order_id={self.order_id}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "order_id": self.order_id,
            "partner_id": self.partner_id,
            "warehouse_id": self.warehouse_id,
            "staff_id": self.staff_id,
            "total_refund_cents": self.total_refund_cents,
            "total_refund": str(from_cents(self.total_refund_cents)),
            "reason": self.reason,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class ReturnItem(db.Model):
    __tablename__ = "return_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("returns.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    refund_price_cents = db.Column(db.BigInteger, nullable=False)
    line_refund_cents = db.Column(db.BigInteger, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    return_doc = db.relationship("Return", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "position": self.position,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "quantity": self.quantity,
            "refund_price_cents": self.refund_price_cents,
            "line_refund_cents": self.line_refund_cents,
            "refund_price": str(from_cents(self.refund_price_cents)),
            "created_at": to_utc_z(self.created_at),
        }
