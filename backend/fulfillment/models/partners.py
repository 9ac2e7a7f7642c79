from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z

PARTNER_STATUS_ACTIVE = "active"
PARTNER_STATUS_LOCKED = "locked"
PARTNER_STATUSES = (PARTNER_STATUS_ACTIVE, PARTNER_STATUS_LOCKED)

PARTNER_TYPES = ("customer", "supplier")


class Partner(db.Model):
    """
    Customer or supplier with a credit relationship.

    CREDIT INVARIANT:
    A new order may only commit if current_debt + order total <= debt_limit.
    Balance columns are written exclusively by credit_service.
    """
    __tablename__ = "partners"
    __table_args__ = (
        db.Index("ix_partners_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False, default="customer")
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=PARTNER_STATUS_ACTIVE)

    # Running balance owed by the partner and its ceiling (cents)
    current_debt_cents = db.Column(db.BigInteger, nullable=False, default=0)
    debt_limit_cents = db.Column(db.BigInteger, nullable=False, default=0)
    # Cumulative sales booked against the partner (cents)
    total_revenue_cents = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def is_locked(self) -> bool:
        return self.status == PARTNER_STATUS_LOCKED

    def __repr__(self) -> str:
        return f"<Partner id={self.id} code={self.code!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "type": self.type,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "status": self.status,
            "current_debt_cents": self.current_debt_cents,
            "debt_limit_cents": self.debt_limit_cents,
            "total_revenue_cents": self.total_revenue_cents,
            "current_debt": str(from_cents(self.current_debt_cents)),
            "debt_limit": str(from_cents(self.debt_limit_cents)),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
