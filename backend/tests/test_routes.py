# Overview: Pytest coverage for the HTTP surface (status codes and bodies).

import pytest

from fulfillment.models import ActivityLog
from fulfillment.services import inventory_service

from conftest import actor_headers


def _order_payload(partner, warehouse, product, quantity=2, price="100.00", **extra):
    payload = {
        "partner_id": partner.id,
        "warehouse_id": warehouse.id,
        "items": [{"product_id": product.id, "quantity": quantity, "price": price}],
    }
    payload.update(extra)
    return payload


class TestActorHeaders:
    def test_missing_identity_is_401(self, client, db_session):
        resp = client.post("/api/orders", json={})
        assert resp.status_code == 401

    def test_unknown_role_is_401(self, client, db_session):
        resp = client.post("/api/orders", json={}, headers=actor_headers(role="intern"))
        assert resp.status_code == 401

    def test_disallowed_role_is_403(self, client, db_session):
        resp = client.post("/api/orders", json={}, headers=actor_headers(role="accountant"))
        assert resp.status_code == 403
        assert resp.get_json()["kind"] == "forbidden"


class TestOrderRoutes:
    def test_create_order(self, client, db_session, partner, stocked, product_a):
        resp = client.post(
            "/api/orders",
            json=_order_payload(partner, stocked, product_a, note="first"),
            headers=actor_headers("u-42", "sale"),
        )
        assert resp.status_code == 201
        order = resp.get_json()["order"]
        assert order["code"] == "ORD-000001"
        assert order["total_amount"] == "200.00"
        assert order["total_amount_cents"] == 20000
        assert order["staff_id"] == "u-42"
        assert order["status"] == "completed"
        assert order["items"][0]["product_name"] == "Product A"
        assert order["items"][0]["product_sku"] == "SKU-A"

        fetched = client.get(f"/api/orders/{order['id']}", headers=actor_headers())
        assert fetched.status_code == 200
        assert fetched.get_json()["order"]["code"] == "ORD-000001"

    def test_explicit_staff_id_wins(self, client, db_session, partner, stocked, product_a):
        resp = client.post(
            "/api/orders",
            json=_order_payload(partner, stocked, product_a, staff_id="u-99"),
            headers=actor_headers("u-42", "sale"),
        )
        assert resp.status_code == 201
        assert resp.get_json()["order"]["staff_id"] == "u-99"

    def test_validation_error_is_400(self, client, db_session, partner, stocked, product_a):
        resp = client.post(
            "/api/orders",
            json=_order_payload(partner, stocked, product_a, quantity=0),
            headers=actor_headers(),
        )
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "validation"

    def test_insufficient_stock_is_422(self, client, db_session, partner, stocked, product_a):
        resp = client.post(
            "/api/orders",
            json=_order_payload(partner, stocked, product_a, quantity=11),
            headers=actor_headers(),
        )
        assert resp.status_code == 422
        body = resp.get_json()
        assert body["kind"] == "insufficient_stock"
        assert body["details"]["available"] == 10
        assert body["details"]["requested"] == 11

    def test_limit_exceeded_is_422(self, client, db_session, partner, stocked, product_a):
        partner.current_debt_cents = 90_000_000
        db_session.commit()

        resp = client.post(
            "/api/orders",
            json=_order_payload(partner, stocked, product_a, quantity=2, price="100000"),
            headers=actor_headers(),
        )
        assert resp.status_code == 422
        body = resp.get_json()
        assert body["kind"] == "limit_exceeded"
        assert body["details"]["current_debt_cents"] == 90_000_000
        assert body["details"]["attempted_cents"] == 20_000_000
        assert body["details"]["debt_limit_cents"] == 100_000_000
        assert inventory_service.get_quantity(product_a.id, stocked.id) == 10

    def test_locked_partner_is_403(self, client, db_session, partner, stocked, product_a):
        partner.status = "locked"
        db_session.commit()

        resp = client.post("/api/orders", json=_order_payload(partner, stocked, product_a), headers=actor_headers())
        assert resp.status_code == 403

    def test_duplicate_code_is_409(self, client, db_session, partner, stocked, product_a):
        payload = _order_payload(partner, stocked, product_a, quantity=1, code="ORD-2024-001")
        assert client.post("/api/orders", json=payload, headers=actor_headers()).status_code == 201

        resp = client.post("/api/orders", json=payload, headers=actor_headers())
        assert resp.status_code == 409
        assert resp.get_json()["kind"] == "conflict"

    def test_missing_order_is_404(self, client, db_session):
        resp = client.get("/api/orders/999999", headers=actor_headers())
        assert resp.status_code == 404


class TestReturnRoutes:
    def test_create_return(self, client, db_session, partner, stocked, product_a):
        order = client.post(
            "/api/orders",
            json=_order_payload(partner, stocked, product_a, quantity=3),
            headers=actor_headers(),
        ).get_json()["order"]

        resp = client.post(
            "/api/returns",
            json={
                "order_id": order["id"],
                "partner_id": partner.id,
                "reason": "Damaged",
                "items": [{"product_id": product_a.id, "quantity": 2, "refund_price": "100.00"}],
            },
            headers=actor_headers("u-5", "warehouse"),
        )
        assert resp.status_code == 201
        body = resp.get_json()["return"]
        assert body["total_refund"] == "200.00"
        assert body["code"] == "RET-000001"
        assert inventory_service.get_quantity(product_a.id, stocked.id) == 9

        fetched = client.get(f"/api/orders/{order['id']}", headers=actor_headers()).get_json()["order"]
        assert fetched["status"] == "returned"

        again = client.post(
            "/api/returns",
            json={
                "order_id": order["id"],
                "partner_id": partner.id,
                "items": [{"product_id": product_a.id, "quantity": 1, "refund_price": "100.00"}],
            },
            headers=actor_headers(),
        )
        assert again.status_code == 409


class TestMasterDataRoutes:
    def test_create_partner_defaults_limit(self, client, app, db_session):
        resp = client.post(
            "/api/partners",
            json={"code": "C100", "name": "New Co"},
            headers=actor_headers(role="accountant"),
        )
        assert resp.status_code == 201
        partner = resp.get_json()["partner"]
        assert partner["debt_limit_cents"] == app.config["DEFAULT_DEBT_LIMIT_CENTS"]
        assert partner["current_debt_cents"] == 0
        assert partner["status"] == "active"

    def test_create_partner_with_limit(self, client, db_session):
        resp = client.post(
            "/api/partners",
            json={"code": "C101", "name": "New Co", "debt_limit": "5000.50"},
            headers=actor_headers(role="admin"),
        )
        assert resp.status_code == 201
        assert resp.get_json()["partner"]["debt_limit_cents"] == 500050

    def test_balance_fields_are_not_writable(self, client, db_session):
        resp = client.post(
            "/api/partners",
            json={"code": "C102", "name": "New Co", "current_debt_cents": 5},
            headers=actor_headers(role="admin"),
        )
        assert resp.status_code == 400

    def test_duplicate_partner_code(self, client, db_session, partner):
        resp = client.post(
            "/api/partners",
            json={"code": partner.code, "name": "Dup"},
            headers=actor_headers(role="admin"),
        )
        assert resp.status_code == 409

    def test_lock_partner_admin_only(self, client, db_session, partner):
        resp = client.patch(
            f"/api/partners/{partner.id}/status",
            json={"status": "locked"},
            headers=actor_headers(role="accountant"),
        )
        assert resp.status_code == 403

        resp = client.patch(
            f"/api/partners/{partner.id}/status",
            json={"status": "locked"},
            headers=actor_headers("admin-1", "admin"),
        )
        assert resp.status_code == 200
        assert resp.get_json()["partner"]["status"] == "locked"

        db_session.refresh(partner)
        assert partner.status == "locked"
        entry = db_session.query(ActivityLog).filter_by(action="LOCK_PARTNER").one()
        assert entry.actor_id == "admin-1"

    def test_invalid_status(self, client, db_session, partner):
        resp = client.patch(
            f"/api/partners/{partner.id}/status",
            json={"status": "frozen"},
            headers=actor_headers(role="admin"),
        )
        assert resp.status_code == 400

    def test_create_warehouse_and_product_with_stock(self, client, db_session):
        wh = client.post(
            "/api/warehouses",
            json={"code": "WH9", "name": "North"},
            headers=actor_headers(role="admin"),
        )
        assert wh.status_code == 201
        warehouse_id = wh.get_json()["warehouse"]["id"]

        resp = client.post(
            "/api/products",
            json={
                "sku": "P-9",
                "name": "Gadget",
                "retail_price": "19.99",
                "inventory": [{"warehouse_id": warehouse_id, "quantity": 7}],
            },
            headers=actor_headers(role="warehouse"),
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["product"]["retail_price_cents"] == 1999
        assert body["inventory"] == {str(warehouse_id): 7}

    def test_product_edit_keeps_order_snapshot(self, client, db_session, partner, stocked, product_a):
        order = client.post(
            "/api/orders",
            json=_order_payload(partner, stocked, product_a, quantity=1),
            headers=actor_headers(),
        ).get_json()["order"]

        resp = client.patch(
            f"/api/products/{product_a.id}",
            json={"name": "Renamed", "sku": "SKU-RENAMED"},
            headers=actor_headers(role="admin"),
        )
        assert resp.status_code == 200
        assert resp.get_json()["product"]["name"] == "Renamed"

        fetched = client.get(f"/api/orders/{order['id']}", headers=actor_headers()).get_json()["order"]
        assert fetched["items"][0]["product_name"] == "Product A"
        assert fetched["items"][0]["product_sku"] == "SKU-A"

    def test_product_sku_conflict(self, client, db_session, product_a, product_b):
        resp = client.patch(
            f"/api/products/{product_b.id}",
            json={"sku": product_a.sku},
            headers=actor_headers(role="admin"),
        )
        assert resp.status_code == 409

    def test_update_partner_fields(self, client, db_session, partner):
        resp = client.patch(
            f"/api/partners/{partner.id}",
            json={"name": "Acme Holdings", "phone": "555-0100", "debt_limit": "2500.00"},
            headers=actor_headers("acc-1", "accountant"),
        )
        assert resp.status_code == 200
        body = resp.get_json()["partner"]
        assert body["name"] == "Acme Holdings"
        assert body["debt_limit_cents"] == 250000
        assert body["current_debt_cents"] == 0

        entry = db_session.query(ActivityLog).filter_by(action="UPDATE_PARTNER").one()
        assert entry.actor_id == "acc-1"
        assert entry.details["fields"] == ["debt_limit_cents", "name", "phone"]

    def test_lowered_limit_gates_next_order(self, client, db_session, partner, stocked, product_a):
        first = client.post(
            "/api/orders",
            json=_order_payload(partner, stocked, product_a, quantity=1, price="300.00"),
            headers=actor_headers(),
        )
        assert first.status_code == 201

        resp = client.patch(
            f"/api/partners/{partner.id}",
            json={"debt_limit": "500.00"},
            headers=actor_headers(role="admin"),
        )
        assert resp.status_code == 200

        resp = client.post(
            "/api/orders",
            json=_order_payload(partner, stocked, product_a, quantity=1, price="300.00"),
            headers=actor_headers(),
        )
        assert resp.status_code == 422
        body = resp.get_json()
        assert body["kind"] == "limit_exceeded"
        assert body["details"]["current_debt_cents"] == 30000
        assert body["details"]["debt_limit_cents"] == 50000
        assert inventory_service.get_quantity(product_a.id, stocked.id) == 9

    @pytest.mark.parametrize("payload", [
        {"current_debt_cents": 0},
        {"total_revenue_cents": 0},
        {"status": "locked"},
        {"debt_limit": "-1"},
    ])
    def test_update_partner_rejects(self, client, db_session, partner, payload):
        resp = client.patch(
            f"/api/partners/{partner.id}",
            json=payload,
            headers=actor_headers(role="admin"),
        )
        assert resp.status_code == 400
        db_session.refresh(partner)
        assert partner.status == "active"
        assert partner.debt_limit_cents == 100_000_000

    def test_update_partner_code_conflict(self, client, db_session, partner):
        other = client.post(
            "/api/partners",
            json={"code": "C200", "name": "Other"},
            headers=actor_headers(role="admin"),
        ).get_json()["partner"]

        resp = client.patch(
            f"/api/partners/{other['id']}",
            json={"code": partner.code},
            headers=actor_headers(role="admin"),
        )
        assert resp.status_code == 409

    def test_update_partner_role_and_missing(self, client, db_session, partner):
        resp = client.patch(f"/api/partners/{partner.id}", json={"name": "X"}, headers=actor_headers(role="sale"))
        assert resp.status_code == 403

        resp = client.patch("/api/partners/999999", json={"name": "X"}, headers=actor_headers(role="admin"))
        assert resp.status_code == 404

    def test_oversized_initial_stock_is_400(self, client, db_session, warehouse):
        resp = client.post(
            "/api/products",
            json={
                "sku": "P-BIG",
                "name": "Big",
                "inventory": [{"warehouse_id": warehouse.id, "quantity": 2**63}],
            },
            headers=actor_headers(role="admin"),
        )
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "validation"

        resp = client.get("/api/products/999999", headers=actor_headers())
        assert resp.status_code == 404

    def test_oversized_order_quantity_is_400(self, client, db_session, partner, stocked, product_a):
        resp = client.post(
            "/api/orders",
            json=_order_payload(partner, stocked, product_a, quantity=2**63),
            headers=actor_headers(),
        )
        assert resp.status_code == 400
        assert inventory_service.get_quantity(product_a.id, stocked.id) == 10

    def test_get_product_with_stock(self, client, db_session, stocked, product_a):
        resp = client.get(f"/api/products/{product_a.id}", headers=actor_headers(role="warehouse"))
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["product"]["sku"] == "SKU-A"
        assert body["inventory"] == {str(stocked.id): 10}

    def test_inactive_product_cannot_be_ordered(self, client, db_session, partner, stocked, product_a):
        resp = client.patch(
            f"/api/products/{product_a.id}",
            json={"is_active": False},
            headers=actor_headers(role="admin"),
        )
        assert resp.status_code == 200

        resp = client.post("/api/orders", json=_order_payload(partner, stocked, product_a), headers=actor_headers())
        assert resp.status_code == 400
        assert "inactive" in resp.get_json()["error"]
        assert inventory_service.get_quantity(product_a.id, stocked.id) == 10



def test_health(client, db_session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json()["checks"]["database"]["status"] == "healthy"
