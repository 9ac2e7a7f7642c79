"""
Fulfillment Transaction Coordinator

WHY: Creating an order touches the partner balance, one inventory row per
product, the order header, its items and the activity log. A return undoes
part of that. Either every one of those writes becomes visible or none does.

DESIGN PRINCIPLES:
- Each invocation is exactly one atomic unit (concurrency.atomic_unit).
- The work is an explicit, ordered phase list declared on the class. Lock
  acquisition order is therefore a property of the coordinator:
    order row (returns only) -> partner row -> inventory rows by ascending
    product id -> document sequence row
  Two units touching the same rows always lock them in the same relative
  order, so they cannot deadlock on each other.
- Phases never retry. Any typed failure aborts the unit and propagates; a
  raw storage failure is wrapped as StorageError by atomic_unit.

ORDER PHASES:
1. build             snapshot products into an OrderDraft
2. validate_partner  partner exists and is not locked
3. check_credit      current_debt + total <= debt_limit
4. reserve_inventory guarded decrement per product
5. persist           order header + items (code conflicts -> ConflictError)
6. apply_balance     charge debt and revenue
7. append_audit      CREATE_ORDER activity entry

RETURN PHASES:
1. build, 2. validate_order, 3. validate_partner, 4. restock_inventory,
5. persist, 6. apply_balance (credit debt, order -> returned), 7. append_audit
"""

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..actor import Actor, SYSTEM_ACTOR
from ..errors import ConflictError, FulfillmentError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Order, OrderItem, Return, ReturnItem
from ..models.orders import ORDER_STATUS_COMPLETED, ORDER_STATUS_RETURNED
from ..models.returns import RETURN_STATUS_COMPLETED
from ..money import from_cents
from . import activity_service, credit_service, inventory_service
from .concurrency import atomic_unit, lock_for_update
from .order_builder import OrderDraft, OrderRequest, assign_order_code, build_order, validate_order_request
from .return_builder import (
    ReturnDraft,
    ReturnRequest,
    assign_return_code,
    build_return,
    check_against_order,
    validate_return_request,
)

logger = logging.getLogger(__name__)


class _UnitOfWork:
    """Runs ``PHASES`` in order inside one atomic unit."""

    PHASES: tuple[str, ...] = ()
    label = "unit of work"

    def __init__(self, actor: Actor | None = None):
        self.actor = actor or SYSTEM_ACTOR
        self.completed_phases: list[str] = []

    def run(self):
        try:
            with atomic_unit(self.label):
                for phase in self.PHASES:
                    getattr(self, f"phase_{phase}")()
                    self.completed_phases.append(phase)
        except FulfillmentError as exc:
            done = len(self.completed_phases)
            failed_phase = self.PHASES[done] if done < len(self.PHASES) else "commit"
            logger.warning(
                "%s aborted in phase %s: %s (%s)",
                self.label, failed_phase, exc.message, exc.kind,
            )
            raise
        return self.result()

    def result(self):
        raise NotImplementedError


class OrderTransaction(_UnitOfWork):
    PHASES = (
        "build",
        "validate_partner",
        "check_credit",
        "reserve_inventory",
        "persist",
        "apply_balance",
        "append_audit",
    )
    label = "create_order"

    def __init__(self, request: OrderRequest, actor: Actor | None = None):
        super().__init__(actor)
        self.request = request
        self.draft: OrderDraft | None = None
        self.partner = None
        self.order: Order | None = None

    def phase_build(self):
        self.draft = build_order(self.request, staff_id=self.actor.user_id)

    def phase_validate_partner(self):
        self.partner = credit_service.lock_partner(self.draft.partner_id)
        credit_service.ensure_active(self.partner)

    def phase_check_credit(self):
        credit_service.check_credit(self.partner, self.draft.total_amount_cents)

    def phase_reserve_inventory(self):
        names = {line.product_id: line.product_name for line in self.draft.lines}
        for product_id, quantity in self.draft.quantities_by_product():
            inventory_service.check_and_reserve(
                product_id,
                self.draft.warehouse_id,
                quantity,
                product_name=names[product_id],
            )

    def phase_persist(self):
        draft = self.draft
        assign_order_code(draft, current_app.config["ORDER_CODE_PREFIX"])

        total = draft.total_amount_cents
        order = Order(
            code=draft.code,
            partner_id=draft.partner_id,
            warehouse_id=draft.warehouse_id,
            staff_id=draft.staff_id,
            total_amount_cents=total,
            final_amount_cents=total,
            paid_amount_cents=0,
            status=ORDER_STATUS_COMPLETED,
            note=draft.note,
        )
        db.session.add(order)
        _flush_or_conflict("Order", draft.code)

        for line in draft.lines:
            db.session.add(OrderItem(
                order_id=order.id,
                position=line.position,
                product_id=line.product_id,
                product_name=line.product_name,
                product_sku=line.product_sku,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                discount_cents=0,
                line_total_cents=line.line_total_cents,
            ))
        db.session.flush()
        self.order = order

    def phase_apply_balance(self):
        self.partner = credit_service.charge(self.draft.partner_id, self.draft.total_amount_cents)

    def phase_append_audit(self):
        activity_service.append_activity(
            actor_id=self.actor.user_id,
            action="CREATE_ORDER",
            entity_type="orders",
            entity_id=self.order.id,
            details={
                "code": self.order.code,
                "amount": str(from_cents(self.order.total_amount_cents)),
                "amount_cents": self.order.total_amount_cents,
                "partner_id": self.order.partner_id,
                "warehouse_id": self.order.warehouse_id,
                "item_count": len(self.draft.lines),
            },
        )

    def result(self) -> Order:
        logger.info(
            "Order %s committed: partner=%s warehouse=%s total_cents=%s",
            self.order.code, self.order.partner_id, self.order.warehouse_id, self.order.total_amount_cents,
        )
        return self.order


class ReturnTransaction(_UnitOfWork):
    PHASES = (
        "build",
        "validate_order",
        "validate_partner",
        "restock_inventory",
        "persist",
        "apply_balance",
        "append_audit",
    )
    label = "create_return"

    def __init__(self, request: ReturnRequest, actor: Actor | None = None):
        super().__init__(actor)
        self.request = request
        self.draft: ReturnDraft | None = None
        self.order: Order | None = None
        self.return_doc: Return | None = None

    def phase_build(self):
        self.draft = build_return(self.request, staff_id=self.actor.user_id)

    def phase_validate_order(self):
        order = lock_for_update(db.session.query(Order).filter_by(id=self.draft.order_id)).first()
        if order is None:
            raise NotFoundError(
                f"Order {self.draft.order_id} not found",
                details={"order_id": self.draft.order_id},
            )
        if order.partner_id != self.draft.partner_id:
            raise ValidationError(
                f"Order {order.code} does not belong to partner {self.draft.partner_id}",
                details={"order_id": order.id, "partner_id": self.draft.partner_id},
            )
        if order.status == ORDER_STATUS_RETURNED:
            raise ConflictError(
                f"Order {order.code} has already been returned",
                details={"order_id": order.id, "status": order.status},
            )
        check_against_order(self.draft, order)
        self.order = order

    def phase_validate_partner(self):
        # Returns are accepted from locked partners; only new charges are gated.
        credit_service.lock_partner(self.draft.partner_id)

    def phase_restock_inventory(self):
        for product_id, quantity in self.draft.quantities_by_product():
            inventory_service.release(product_id, self.order.warehouse_id, quantity)

    def phase_persist(self):
        draft = self.draft
        assign_return_code(draft, current_app.config["RETURN_CODE_PREFIX"])

        return_doc = Return(
            code=draft.code,
            order_id=self.order.id,
            partner_id=draft.partner_id,
            warehouse_id=self.order.warehouse_id,
            staff_id=draft.staff_id,
            total_refund_cents=draft.total_refund_cents,
            reason=draft.reason,
            status=RETURN_STATUS_COMPLETED,
        )
        db.session.add(return_doc)
        _flush_or_conflict("Return", draft.code)

        for line in draft.lines:
            db.session.add(ReturnItem(
                return_id=return_doc.id,
                position=line.position,
                product_id=line.product_id,
                product_name=line.product_name,
                product_sku=line.product_sku,
                quantity=line.quantity,
                refund_price_cents=line.refund_price_cents,
                line_refund_cents=line.line_refund_cents,
            ))
        db.session.flush()
        self.return_doc = return_doc

    def phase_apply_balance(self):
        credit_service.credit(self.draft.partner_id, self.draft.total_refund_cents)
        self.order.status = ORDER_STATUS_RETURNED
        db.session.flush()

    def phase_append_audit(self):
        activity_service.append_activity(
            actor_id=self.actor.user_id,
            action="CREATE_RETURN",
            entity_type="returns",
            entity_id=self.return_doc.id,
            details={
                "code": self.return_doc.code,
                "amount": str(from_cents(self.return_doc.total_refund_cents)),
                "amount_cents": self.return_doc.total_refund_cents,
                "partner_id": self.return_doc.partner_id,
                "order_id": self.return_doc.order_id,
            },
        )

    def result(self) -> Return:
        logger.info(
            "Return %s committed: order=%s partner=%s refund_cents=%s",
            self.return_doc.code, self.return_doc.order_id,
            self.return_doc.partner_id, self.return_doc.total_refund_cents,
        )
        return self.return_doc


def _flush_or_conflict(kind: str, code: str) -> None:
    """Flush a new header; a unique-code race surfaces as ConflictError."""
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise ConflictError(f"{kind} code '{code}' already exists", details={"code": code}) from exc


# =============================================================================
# PUBLIC ENTRY POINTS
# =============================================================================

def create_order(request: OrderRequest, actor: Actor | None = None) -> Order:
    """
    Create an order atomically.

    Raises:
        ValidationError, NotFoundError, ForbiddenError, LimitExceededError,
        InsufficientStockError, ConflictError, StorageError
    """
    validate_order_request(request)
    return OrderTransaction(request, actor).run()


def create_return(request: ReturnRequest, actor: Actor | None = None) -> Return:
    """
    Create a return atomically: restock, reduce partner debt by the refund,
    and mark the original order as returned.
    """
    validate_return_request(request)
    return ReturnTransaction(request, actor).run()


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError(f"Order {order_id} not found", details={"order_id": order_id})
    return order


def get_return(return_id: int) -> Return:
    return_doc = db.session.get(Return, return_id)
    if return_doc is None:
        raise NotFoundError(f"Return {return_id} not found", details={"return_id": return_id})
    return return_doc
