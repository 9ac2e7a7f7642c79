from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

# Upper bound of the 32-bit quantity column
MAX_QUANTITY = 2**31 - 1


class InventoryRecord(db.Model):
    """
    Quantity of one product at one warehouse.

    Rows are created on the first stock event for a (product, warehouse) pair
    and never deleted; zero is a valid quantity. ``quantity`` is only mutated
    through guarded UPDATE statements in inventory_service so it can never go
    below zero.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", name="uq_inventory_product_warehouse"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("inventory_records", lazy=True))
    warehouse = db.relationship("Warehouse", backref=db.backref("inventory_records", lazy=True))

    def __repr__(self) -> str:
        return (
            f"<InventoryRecord product_id={self.product_id} "
            f"warehouse_id={self.warehouse_id} quantity={self.quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "quantity": self.quantity,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
