# Overview: Pytest coverage for the seeding CLI commands.

from fulfillment.models import Partner, Product, Warehouse
from fulfillment.services import inventory_service


def test_seed_master_data(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["warehouses", "create", "--code", "WH1", "--name", "Main"])
    assert result.exit_code == 0, result.output
    warehouse = db_session.query(Warehouse).filter_by(code="WH1").one()

    result = runner.invoke(args=[
        "products", "create", "--sku", "SKU-1", "--name", "Widget", "--price", "12.50",
        "--stock", f"{warehouse.id}:5",
    ])
    assert result.exit_code == 0, result.output
    product = db_session.query(Product).filter_by(sku="SKU-1").one()
    assert product.retail_price_cents == 1250
    assert inventory_service.get_quantity(product.id, warehouse.id) == 5

    result = runner.invoke(args=[
        "stock", "receive", "--product-id", str(product.id), "--warehouse-id", str(warehouse.id), "--quantity", "3",
    ])
    assert result.exit_code == 0, result.output
    assert "8 on hand" in result.output

    result = runner.invoke(args=["partners", "create", "--code", "C1", "--name", "Acme", "--debt-limit", "1000"])
    assert result.exit_code == 0, result.output
    partner = db_session.query(Partner).filter_by(code="C1").one()
    assert partner.debt_limit_cents == 100000

    result = runner.invoke(args=["partners", "set-status", str(partner.id), "locked"])
    assert result.exit_code == 0, result.output
    db_session.refresh(partner)
    assert partner.is_locked


def test_duplicate_warehouse_reports_error(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["warehouses", "create", "--code", "WH1", "--name", "Main"])

    result = runner.invoke(args=["warehouses", "create", "--code", "WH1", "--name", "Again"])
    assert result.exit_code != 0
    assert "already exists" in result.output


def test_malformed_stock_option(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["products", "create", "--sku", "X", "--name", "X", "--stock", "oops"])
    assert result.exit_code != 0
