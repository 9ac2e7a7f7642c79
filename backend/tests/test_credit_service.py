# Overview: Pytest coverage for the partner credit ledger.

from decimal import Decimal

import pytest

from fulfillment.errors import ForbiddenError, LimitExceededError, NotFoundError
from fulfillment.models import Partner
from fulfillment.services import credit_service
from fulfillment.services.concurrency import atomic_unit


def _make_partner(db_session, *, debt, limit, status="active", code="P-1"):
    p = Partner(
        code=code,
        name="Partner",
        status=status,
        current_debt_cents=debt,
        debt_limit_cents=limit,
        total_revenue_cents=0,
    )
    db_session.add(p)
    db_session.commit()
    return p


class TestCheckAndCharge:
    def test_charge_within_limit(self, db_session):
        p = _make_partner(db_session, debt=0, limit=50_000)

        with atomic_unit("test charge"):
            credit_service.check_and_charge(p.id, 20_000)

        db_session.refresh(p)
        assert p.current_debt_cents == 20_000
        assert p.total_revenue_cents == 20_000

    def test_charge_up_to_exact_limit(self, db_session):
        p = _make_partner(db_session, debt=30_000, limit=50_000)

        with atomic_unit("test charge"):
            credit_service.check_and_charge(p.id, 20_000)

        db_session.refresh(p)
        assert p.current_debt_cents == 50_000

    def test_limit_exceeded_carries_figures(self, db_session):
        """limit 1,000,000 / debt 900,000 / attempt 200,000."""
        p = _make_partner(db_session, debt=90_000_000, limit=100_000_000)

        with pytest.raises(LimitExceededError) as exc_info:
            with atomic_unit("test charge"):
                credit_service.check_and_charge(p.id, 20_000_000)

        err = exc_info.value
        assert err.current == Decimal("900000")
        assert err.attempted == Decimal("200000")
        assert err.limit == Decimal("1000000")
        assert err.status_code == 422

        db_session.refresh(p)
        assert p.current_debt_cents == 90_000_000
        assert p.total_revenue_cents == 0

    def test_locked_partner_is_forbidden(self, db_session):
        p = _make_partner(db_session, debt=0, limit=50_000, status="locked")

        with pytest.raises(ForbiddenError):
            with atomic_unit("test charge"):
                credit_service.check_and_charge(p.id, 1)

        db_session.refresh(p)
        assert p.current_debt_cents == 0

    def test_unknown_partner(self, db_session):
        with pytest.raises(NotFoundError):
            credit_service.lock_partner(999_999)

    def test_guarded_charge_rechecks_limit(self, db_session):
        """charge() alone still refuses to cross the ceiling."""
        p = _make_partner(db_session, debt=40_000, limit=50_000)

        with pytest.raises(LimitExceededError):
            with atomic_unit("test charge"):
                credit_service.charge(p.id, 10_001)

        db_session.refresh(p)
        assert p.current_debt_cents == 40_000


class TestCredit:
    def test_credit_reduces_debt(self, db_session):
        p = _make_partner(db_session, debt=30_000, limit=50_000)

        with atomic_unit("test credit"):
            credit_service.credit(p.id, 20_000)

        db_session.refresh(p)
        assert p.current_debt_cents == 10_000

    def test_credit_is_floored_at_zero(self, db_session):
        p = _make_partner(db_session, debt=5_000, limit=50_000)

        with atomic_unit("test credit"):
            credit_service.credit(p.id, 20_000)

        db_session.refresh(p)
        assert p.current_debt_cents == 0

    def test_credit_ignores_lock_and_limit(self, db_session):
        p = _make_partner(db_session, debt=80_000, limit=50_000, status="locked")

        with atomic_unit("test credit"):
            credit_service.credit(p.id, 10_000)

        db_session.refresh(p)
        assert p.current_debt_cents == 70_000
