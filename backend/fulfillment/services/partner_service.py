# Overview: Partner master data (create, edit, lock/unlock).
"""
Partners Service

Balances (current_debt, total_revenue) are never written here; they belong
to credit_service and only move inside order/return units of work.
"""
from __future__ import annotations

import logging

from flask import current_app

from ..actor import Actor, SYSTEM_ACTOR
from ..errors import ConflictError, ForbiddenError, ValidationError
from ..extensions import db
from ..models import Partner
from ..models.partners import PARTNER_STATUS_LOCKED, PARTNER_STATUSES, PARTNER_TYPES
from . import activity_service
from .concurrency import atomic_unit
from .credit_service import get_partner, lock_partner

logger = logging.getLogger(__name__)

PARTNER_MUTABLE_FIELDS = {"code", "name", "type", "phone", "email", "address", "status", "debt_limit_cents"}


def apply_partner_patch(p: Partner, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PARTNER_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def create_partner(*, patch: dict, actor: Actor | None = None) -> Partner:
    """
    Create a partner from a validated patch dict.

    debt_limit_cents defaults to DEFAULT_DEBT_LIMIT_CENTS when omitted.

    Raises:
        ValidationError: unknown type or status
        ConflictError: partner code already in use
    """
    actor = actor or SYSTEM_ACTOR
    code = patch.get("code")
    if not code:
        raise ValidationError("code is required")
    if patch.get("type") is not None and patch["type"] not in PARTNER_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(PARTNER_TYPES)}")
    if patch.get("status") is not None and patch["status"] not in PARTNER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PARTNER_STATUSES)}")

    with atomic_unit("create_partner"):
        if db.session.query(Partner.id).filter_by(code=code).first() is not None:
            raise ConflictError(f"Partner code '{code}' already exists", details={"code": code})

        p = Partner(current_debt_cents=0, total_revenue_cents=0)
        apply_partner_patch(p, patch)
        if p.debt_limit_cents is None:
            p.debt_limit_cents = current_app.config["DEFAULT_DEBT_LIMIT_CENTS"]

        db.session.add(p)
        db.session.flush()  # ensure p.id exists before the activity entry

        activity_service.append_activity(
            actor_id=actor.user_id,
            action="CREATE_PARTNER",
            entity_type="partners",
            entity_id=p.id,
            details={"code": p.code, "debt_limit_cents": p.debt_limit_cents},
        )

    logger.info("Partner %s created (id=%s)", p.code, p.id)
    return p


def update_partner(partner_id: int, patch: dict, actor: Actor | None = None) -> Partner:
    """
    Edit partner master data (name, contact fields, type, code, debt_limit).

    Status goes through set_partner_status so the admin rule stays in one
    place. A lowered debt_limit only gates future charges; existing debt is
    left untouched.

    Raises:
        NotFoundError: unknown partner
        ValidationError: unknown type, or status in the patch
        ConflictError: new code belongs to another partner
    """
    actor = actor or SYSTEM_ACTOR
    if "status" in patch:
        raise ValidationError("status is changed through the partner status endpoint")
    if patch.get("type") is not None and patch["type"] not in PARTNER_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(PARTNER_TYPES)}")

    with atomic_unit("update_partner"):
        p = lock_partner(partner_id)

        new_code = patch.get("code")
        if new_code and new_code != p.code:
            clash = (
                db.session.query(Partner.id)
                .filter(Partner.code == new_code, Partner.id != p.id)
                .first()
            )
            if clash is not None:
                raise ConflictError(f"Partner code '{new_code}' already exists", details={"code": new_code})

        changed = sorted(k for k, v in patch.items() if k in PARTNER_MUTABLE_FIELDS and getattr(p, k) != v)
        apply_partner_patch(p, patch)
        db.session.flush()

        if changed:
            activity_service.append_activity(
                actor_id=actor.user_id,
                action="UPDATE_PARTNER",
                entity_type="partners",
                entity_id=p.id,
                details={"code": p.code, "fields": changed, "debt_limit_cents": p.debt_limit_cents},
            )

    logger.info("Partner %s updated (fields=%s)", p.code, changed)
    return p


def set_partner_status(partner_id: int, status: str, actor: Actor | None = None) -> Partner:
    """
    Lock or unlock a partner. Admin only.

    A locked partner cannot place new orders; returns are still accepted.
    """
    actor = actor or SYSTEM_ACTOR
    if not actor.is_admin:
        raise ForbiddenError(
            "Only an admin can change a partner's status",
            details={"role": actor.role},
        )
    if status not in PARTNER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PARTNER_STATUSES)}")

    with atomic_unit("set_partner_status"):
        p = lock_partner(partner_id)
        previous = p.status
        if previous != status:
            p.status = status
            db.session.flush()
            activity_service.append_activity(
                actor_id=actor.user_id,
                action="LOCK_PARTNER" if status == PARTNER_STATUS_LOCKED else "UNLOCK_PARTNER",
                entity_type="partners",
                entity_id=p.id,
                details={"code": p.code, "from": previous, "to": status},
            )

    logger.info("Partner %s status %s -> %s", p.code, previous, status)
    return p


__all__ = ["create_partner", "update_partner", "set_partner_status", "get_partner"]
