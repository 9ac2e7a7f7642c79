# Overview: Unit-of-work and row-locking helpers shared by the write services.

from __future__ import annotations

import logging
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import FulfillmentError, StorageError
from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    Locked reads always reload the row so a stale identity-map copy is never
    used for an invariant check.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; atomic_unit() takes the
    database write lock up front there instead.
    """
    return query.with_for_update().populate_existing()


def _sqlite_connection_idle(session) -> bool:
    raw = session.connection().connection.dbapi_connection
    return not getattr(raw, "in_transaction", False)


@contextmanager
def atomic_unit(label: str):
    """
    Run the enclosed block as one all-or-nothing database transaction.

    - SQLite: BEGIN IMMEDIATE so concurrent writers queue on the database
      lock (bounded by the busy timeout) instead of reading stale rows.
    - Other dialects: callers take row locks with lock_for_update().
    - Typed failures roll back and propagate unchanged.
    - Raw SQLAlchemy errors (lock timeouts, constraint violations at commit)
      roll back and surface as StorageError.
    """
    session = db.session
    try:
        if db.engine.dialect.name == "sqlite" and _sqlite_connection_idle(session):
            session.execute(text("BEGIN IMMEDIATE"))
        yield session
        session.commit()
    except FulfillmentError:
        session.rollback()
        raise
    except IntegrityError as exc:
        session.rollback()
        logger.exception("Integrity failure in %s; rolled back", label)
        raise StorageError(f"{label} failed: integrity violation", details={"operation": label}) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Storage failure in %s; rolled back", label)
        raise StorageError(f"{label} failed: storage error", details={"operation": label}) from exc
    except BaseException:
        session.rollback()
        raise
