# Overview: Pytest coverage for per-warehouse stock counters.

import pytest

from fulfillment.errors import InsufficientStockError, NotFoundError, ValidationError
from fulfillment.models import InventoryRecord
from fulfillment.models.inventory import MAX_QUANTITY
from fulfillment.services import inventory_service
from fulfillment.services.concurrency import atomic_unit

from conftest import set_stock


class TestReadHelpers:
    def test_missing_row_counts_as_zero(self, db_session, warehouse, product_a):
        assert inventory_service.get_quantity(product_a.id, warehouse.id) == 0

    def test_receive_stock_creates_then_increments(self, db_session, warehouse, product_a):
        assert set_stock(product_a.id, warehouse.id, 4) == 4
        assert set_stock(product_a.id, warehouse.id, 3) == 7

        rows = db_session.query(InventoryRecord).filter_by(product_id=product_a.id).all()
        assert len(rows) == 1
        assert rows[0].quantity == 7

    def test_receive_stock_unknown_warehouse(self, db_session, product_a):
        with pytest.raises(NotFoundError):
            set_stock(product_a.id, 999_999, 1)


class TestCheckAndReserve:
    def test_reserve_decrements(self, db_session, warehouse, product_a):
        set_stock(product_a.id, warehouse.id, 5)

        with atomic_unit("test reserve"):
            remaining = inventory_service.check_and_reserve(product_a.id, warehouse.id, 3)

        assert remaining == 2
        assert inventory_service.get_quantity(product_a.id, warehouse.id) == 2

    def test_reserve_exact_quantity_reaches_zero(self, db_session, warehouse, product_a):
        set_stock(product_a.id, warehouse.id, 5)

        with atomic_unit("test reserve"):
            inventory_service.check_and_reserve(product_a.id, warehouse.id, 5)

        assert inventory_service.get_quantity(product_a.id, warehouse.id) == 0

    def test_shortage_reports_available_and_requested(self, db_session, warehouse, product_a):
        set_stock(product_a.id, warehouse.id, 5)

        with pytest.raises(InsufficientStockError) as exc_info:
            with atomic_unit("test reserve"):
                inventory_service.check_and_reserve(
                    product_a.id, warehouse.id, 6, product_name="Product A",
                )

        err = exc_info.value
        assert err.available == 5
        assert err.requested == 6
        assert err.status_code == 422
        assert "Product A" in err.message
        assert inventory_service.get_quantity(product_a.id, warehouse.id) == 5

    def test_no_row_is_a_shortage(self, db_session, warehouse, product_a):
        with pytest.raises(InsufficientStockError) as exc_info:
            with atomic_unit("test reserve"):
                inventory_service.check_and_reserve(product_a.id, warehouse.id, 1)
        assert exc_info.value.available == 0

    def test_other_warehouse_stock_is_not_used(self, db_session, warehouse, other_warehouse, product_a):
        set_stock(product_a.id, other_warehouse.id, 50)

        with pytest.raises(InsufficientStockError):
            with atomic_unit("test reserve"):
                inventory_service.check_and_reserve(product_a.id, warehouse.id, 1)

        assert inventory_service.get_quantity(product_a.id, other_warehouse.id) == 50

    @pytest.mark.parametrize("quantity", [0, -1, True, 1.5])
    def test_rejects_non_positive_quantities(self, db_session, warehouse, product_a, quantity):
        with pytest.raises(ValidationError):
            inventory_service.check_and_reserve(product_a.id, warehouse.id, quantity)

    def test_rejects_quantity_beyond_column_range(self, db_session, warehouse, product_a):
        with pytest.raises(ValidationError):
            inventory_service.check_and_reserve(product_a.id, warehouse.id, MAX_QUANTITY + 1)


class TestRelease:
    def test_release_adds_back(self, db_session, warehouse, product_a):
        set_stock(product_a.id, warehouse.id, 1)

        with atomic_unit("test release"):
            assert inventory_service.release(product_a.id, warehouse.id, 2) == 3

    def test_release_creates_missing_row(self, db_session, warehouse, product_a):
        with atomic_unit("test release"):
            inventory_service.release(product_a.id, warehouse.id, 2)

        assert inventory_service.get_quantity(product_a.id, warehouse.id) == 2

    def test_release_rolls_back_with_unit(self, db_session, warehouse, product_a):
        set_stock(product_a.id, warehouse.id, 1)

        with pytest.raises(RuntimeError):
            with atomic_unit("test release"):
                inventory_service.release(product_a.id, warehouse.id, 2)
                raise RuntimeError("abort")

        assert inventory_service.get_quantity(product_a.id, warehouse.id) == 1


class TestQuantityBounds:
    def test_receive_beyond_column_range(self, db_session, warehouse, product_a):
        with pytest.raises(ValidationError):
            set_stock(product_a.id, warehouse.id, 2**63)
        assert inventory_service.get_quantity(product_a.id, warehouse.id) == 0

    def test_increment_cannot_overflow_counter(self, db_session, warehouse, product_a):
        set_stock(product_a.id, warehouse.id, MAX_QUANTITY)
        with pytest.raises(ValidationError):
            set_stock(product_a.id, warehouse.id, 1)
        assert inventory_service.get_quantity(product_a.id, warehouse.id) == MAX_QUANTITY
