from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z

ORDER_STATUS_COMPLETED = "completed"
ORDER_STATUS_RETURNED = "returned"


class Order(db.Model):
    """
    Sale order header.

    WHY: An order is written exactly once, together with all of its items,
    inside the fulfillment unit of work. Totals are computed at creation and
    never recalculated.

    LIFECYCLE:
    completed (set at creation) -> returned (set by a return transaction)
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_partner_created", "partner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable, unique order code (e.g. "ORD-000123")
    code = db.Column(db.String(64), nullable=False, unique=True, index=True)

    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    # Acting user from the upstream auth layer
    staff_id = db.Column(db.String(64), nullable=True, index=True)

    total_amount_cents = db.Column(db.BigInteger, nullable=False)
    final_amount_cents = db.Column(db.BigInteger, nullable=False)
    paid_amount_cents = db.Column(db.BigInteger, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_COMPLETED, index=True)
    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    partner = db.relationship("Partner", backref=db.backref("orders", lazy=True))
    warehouse = db.relationship("Warehouse")
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} code={self.code!r} status={self.status}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "partner_id": self.partner_id,
            "warehouse_id": self.warehouse_id,
            "staff_id": self.staff_id,
            "total_amount_cents": self.total_amount_cents,
            "final_amount_cents": self.final_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "total_amount": str(from_cents(self.total_amount_cents)),
            "final_amount": str(from_cents(self.final_amount_cents)),
            "paid_amount": str(from_cents(self.paid_amount_cents)),
            "status": self.status,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """Order line with a frozen copy of the product's name and SKU."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.BigInteger, nullable=False)
    discount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    line_total_cents = db.Column(db.BigInteger, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "position": self.position,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "line_total_cents": self.line_total_cents,
            "unit_price": str(from_cents(self.unit_price_cents)),
            "created_at": to_utc_z(self.created_at),
        }
