# Overview: Partner running-debt ledger (single balance per partner).

from __future__ import annotations

from sqlalchemy import case, update

from ..errors import ForbiddenError, LimitExceededError, NotFoundError, StorageError, ValidationError
from ..extensions import db
from ..models import Partner
from ..models.partners import PARTNER_STATUS_ACTIVE
from .concurrency import lock_for_update
"""
Credit invariants (authoritative)

- A charge may only apply while the partner is active and
  current_debt + amount <= debt_limit. The guard is part of the UPDATE
  itself, so the check and the increment are one indivisible step.
- Reversals (credit) never consult the limit; debt is floored at zero.
- Nothing here commits; callers run inside an atomic unit.
"""


def _require_amount(amount_cents) -> int:
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents < 0:
        raise ValidationError("amount must be a non-negative integer number of cents")
    return amount_cents


def get_partner(partner_id: int, *, lock: bool = False) -> Partner:
    query = db.session.query(Partner).filter_by(id=partner_id)
    if lock:
        query = lock_for_update(query)
    partner = query.first()
    if partner is None:
        raise NotFoundError(f"Partner {partner_id} not found", details={"partner_id": partner_id})
    return partner


def lock_partner(partner_id: int) -> Partner:
    """Load the partner row under a write lock for the rest of the unit."""
    return get_partner(partner_id, lock=True)


def _reload(partner_id: int) -> Partner:
    partner = get_partner(partner_id)
    db.session.refresh(partner)
    return partner


def ensure_active(partner: Partner) -> None:
    if partner.is_locked:
        raise ForbiddenError(
            f"Partner {partner.code} is locked and cannot place orders",
            details={"partner_id": partner.id, "status": partner.status},
        )


def check_credit(partner: Partner, amount_cents: int) -> None:
    """Raise the typed failure a charge of ``amount_cents`` would hit."""
    ensure_active(partner)
    if partner.current_debt_cents + amount_cents > partner.debt_limit_cents:
        raise LimitExceededError(
            partner.id,
            partner.current_debt_cents,
            amount_cents,
            partner.debt_limit_cents,
        )


def charge(partner_id: int, amount_cents: int) -> Partner:
    """
    Add ``amount_cents`` to debt and revenue, re-validating status and limit
    in the same statement.
    """
    _require_amount(amount_cents)
    result = db.session.execute(
        update(Partner)
        .where(
            Partner.id == partner_id,
            Partner.status == PARTNER_STATUS_ACTIVE,
            Partner.current_debt_cents + amount_cents <= Partner.debt_limit_cents,
        )
        .values(
            current_debt_cents=Partner.current_debt_cents + amount_cents,
            total_revenue_cents=Partner.total_revenue_cents + amount_cents,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        partner = _reload(partner_id)
        check_credit(partner, amount_cents)
        raise StorageError(
            f"Could not charge partner {partner_id}",
            details={"partner_id": partner_id, "amount_cents": amount_cents},
        )
    return _reload(partner_id)


def check_and_charge(partner_id: int, amount_cents: int) -> Partner:
    """Lock the partner row, validate, then charge."""
    _require_amount(amount_cents)
    partner = lock_partner(partner_id)
    check_credit(partner, amount_cents)
    return charge(partner_id, amount_cents)


def credit(partner_id: int, amount_cents: int) -> Partner:
    """Reduce debt by ``amount_cents`` (return flow). Limits are not consulted."""
    _require_amount(amount_cents)
    result = db.session.execute(
        update(Partner)
        .where(Partner.id == partner_id)
        .values(
            current_debt_cents=case(
                (Partner.current_debt_cents >= amount_cents, Partner.current_debt_cents - amount_cents),
                else_=0,
            )
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError(f"Partner {partner_id} not found", details={"partner_id": partner_id})
    return _reload(partner_id)
