"""
Pytest fixtures for fulfillment backend tests.

Provides test database setup, master-data fixtures, and test client.
"""

import pytest
from fulfillment import create_app
from fulfillment.config import TestConfig
from fulfillment.extensions import db
from fulfillment.models import Partner, Product, Warehouse
from fulfillment.services import inventory_service
from fulfillment.services.concurrency import atomic_unit


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def warehouse(db_session):
    w = Warehouse(code="WH1", name="Main Warehouse")
    db_session.add(w)
    db_session.commit()
    return w


@pytest.fixture(scope='function')
def other_warehouse(db_session):
    w = Warehouse(code="WH2", name="Overflow Warehouse")
    db_session.add(w)
    db_session.commit()
    return w


@pytest.fixture(scope='function')
def product_a(db_session):
    p = Product(sku="SKU-A", name="Product A", retail_price_cents=10000)
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def product_b(db_session):
    p = Product(sku="SKU-B", name="Product B", retail_price_cents=2500)
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def partner(db_session):
    """Active customer with a 1,000,000.00 ceiling and no debt."""
    p = Partner(
        code="C001",
        name="Acme Ltd",
        type="customer",
        status="active",
        current_debt_cents=0,
        debt_limit_cents=100_000_000,
        total_revenue_cents=0,
    )
    db_session.add(p)
    db_session.commit()
    return p


def set_stock(product_id: int, warehouse_id: int, quantity: int) -> int:
    """Seed stock through the inventory service in its own unit of work."""
    with atomic_unit("test seed stock"):
        return inventory_service.receive_stock(product_id, warehouse_id, quantity)


@pytest.fixture(scope='function')
def stocked(warehouse, product_a, product_b):
    """10 x Product A and 10 x Product B in the main warehouse."""
    set_stock(product_a.id, warehouse.id, 10)
    set_stock(product_b.id, warehouse.id, 10)
    return warehouse


def actor_headers(user_id: str = "u-1", role: str = "sale") -> dict:
    """Headers the upstream auth layer forwards for the acting user."""
    return {"X-User-Id": user_id, "X-User-Role": role}
