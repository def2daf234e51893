# Overview: Pytest coverage for the HTTP surface; status codes and error bodies.

from tillpoint.services import inventory_service

from conftest import stock, identity_headers


def cart_payload(beans, filters, location, paid="71.48"):
    return {
        "cart": {
            "lines": [
                {"item_id": beans.id, "location_id": location.id, "unit_price": "29.99", "quantity": 2},
                {"item_id": filters.id, "location_id": location.id, "unit_price": "5.00", "quantity": 1},
            ],
            "payments": [{"payment_type": "cash", "amount": paid}],
        }
    }


class TestHealth:
    def test_health(self, client, db_session):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.json["checks"]["database"]["status"] == "healthy"


class TestIdentity:
    def test_missing_tenant_header(self, client, db_session):
        response = client.post('/api/sales/totals', json={})
        assert response.status_code == 401

    def test_checkout_needs_employee(self, client, db_session, tenant_a):
        response = client.post('/api/sales/checkout', json={}, headers=identity_headers(tenant_a))
        assert response.status_code == 401


class TestSalesRoutes:
    def test_totals(self, client, db_session, tenant_a, location_a, beans, filters):
        response = client.post(
            '/api/sales/totals',
            json=cart_payload(beans, filters, location_a),
            headers=identity_headers(tenant_a),
        )
        assert response.status_code == 200
        totals = response.json["cart"]["totals"]
        assert totals["subtotal"] == "64.98"
        assert totals["tax"] == "6.50"
        assert totals["total"] == "71.48"

    def test_totals_ignore_client_tax_flag(self, client, db_session, tenant_a, location_a, beans, filters,
                                           customer_a, exempt_customer_a):
        headers = identity_headers(tenant_a)

        payload = cart_payload(beans, filters, location_a)
        payload["cart"]["customer"] = {"id": customer_a.id, "taxable": False}
        response = client.post('/api/sales/totals', json=payload, headers=headers)
        assert response.json["cart"]["totals"]["tax"] == "6.50"
        assert response.json["cart"]["customer"]["taxable"] is True

        payload["cart"]["customer"] = {"id": exempt_customer_a.id}
        response = client.post('/api/sales/totals', json=payload, headers=headers)
        assert response.json["cart"]["totals"]["tax"] == "0.00"

    def test_totals_unknown_customer(self, client, db_session, tenant_a, location_a, beans, filters):
        payload = cart_payload(beans, filters, location_a)
        payload["cart"]["customer"] = {"id": 999}
        response = client.post('/api/sales/totals', json=payload, headers=identity_headers(tenant_a))
        assert response.status_code == 400
        assert response.json["code"] == "InvalidCart"

    def test_checkout(self, client, db_session, tenant_a, location_a, beans, filters, cashier_a):
        stock(tenant_a, beans, location_a, 5)
        stock(tenant_a, filters, location_a, 5)

        response = client.post(
            '/api/sales/checkout',
            json=cart_payload(beans, filters, location_a),
            headers=identity_headers(tenant_a, cashier_a),
        )
        assert response.status_code == 201
        sale = response.json["sale"]
        assert sale["status"] == "completed"
        assert sale["sale_total"] == "71.48"
        assert len(sale["lines"]) == 2
        assert response.json["warnings"] == []
        assert inventory_service.get_stock_level(beans.id, location_a.id) == 3

    def test_checkout_insufficient_payment(self, client, db_session, tenant_a, location_a, beans, filters, cashier_a):
        response = client.post(
            '/api/sales/checkout',
            json=cart_payload(beans, filters, location_a, paid="10"),
            headers=identity_headers(tenant_a, cashier_a),
        )
        assert response.status_code == 400
        assert response.json["code"] == "InsufficientPayment"
        assert response.json["details"]["balance"] == "61.48"

    def test_checkout_oversell_is_conflict(self, client, db_session, tenant_a, location_a, beans, filters, cashier_a):
        stock(tenant_a, beans, location_a, 1)
        stock(tenant_a, filters, location_a, 5)
        response = client.post(
            '/api/sales/checkout',
            json=cart_payload(beans, filters, location_a),
            headers=identity_headers(tenant_a, cashier_a),
        )
        assert response.status_code == 409
        assert response.json["code"] == "InsufficientStock"

    def test_checkout_bad_payload(self, client, db_session, tenant_a, cashier_a):
        response = client.post(
            '/api/sales/checkout',
            json={"cart": {"lines": [{"item_id": 1}]}},
            headers=identity_headers(tenant_a, cashier_a),
        )
        assert response.status_code == 400
        assert response.json["code"] == "InvalidCart"

    def test_suspend_resume_discard(self, client, db_session, tenant_a, location_a, beans, filters, cashier_a):
        headers = identity_headers(tenant_a, cashier_a)
        response = client.post('/api/sales/suspend', json=cart_payload(beans, filters, location_a), headers=headers)
        assert response.status_code == 201
        sale_id = response.json["sale_id"]

        listed = client.get('/api/sales/suspended', headers=headers)
        assert [s["id"] for s in listed.json["sales"]] == [sale_id]

        resumed = client.post(f'/api/sales/suspended/{sale_id}/resume', headers=headers)
        assert resumed.status_code == 200
        assert [l["quantity"] for l in resumed.json["cart"]["lines"]] == [2, 1]
        assert resumed.json["cart"]["payments"] == []

        again = client.post(f'/api/sales/suspended/{sale_id}/resume', headers=headers)
        assert again.status_code == 409
        assert again.json["code"] == "SuspendedSaleConflict"

        gone = client.delete(f'/api/sales/suspended/{sale_id}', headers=headers)
        assert gone.status_code == 409

    def test_get_and_void(self, client, db_session, tenant_a, tenant_b, location_a, beans, filters, cashier_a):
        stock(tenant_a, beans, location_a, 5)
        stock(tenant_a, filters, location_a, 5)
        headers = identity_headers(tenant_a, cashier_a)
        sale_id = client.post(
            '/api/sales/checkout', json=cart_payload(beans, filters, location_a), headers=headers,
        ).json["sale"]["id"]

        fetched = client.get(f'/api/sales/{sale_id}', headers=headers)
        assert fetched.status_code == 200
        assert len(fetched.json["sale"]["payments"]) == 1

        # Other tenant cannot see it
        assert client.get(f'/api/sales/{sale_id}', headers=identity_headers(tenant_b)).status_code == 400

        voided = client.post(f'/api/sales/{sale_id}/void', json={"reason": "test"}, headers=headers)
        assert voided.status_code == 200
        assert voided.json["sale"]["status"] == "cancelled"
        assert inventory_service.get_stock_level(beans.id, location_a.id) == 5

        listed = client.get('/api/sales/?status=cancelled', headers=headers)
        assert [s["id"] for s in listed.json["sales"]] == [sale_id]


class TestInventoryRoutes:
    def test_adjust_and_level(self, client, db_session, tenant_a, location_a, beans, cashier_a):
        headers = identity_headers(tenant_a, cashier_a)
        response = client.post(
            '/api/inventory/adjust',
            json={"item_id": beans.id, "location_id": location_a.id, "delta": 7, "reason": "delivery"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json["quantity"] == 7

        level = client.get(f'/api/inventory/{beans.id}/{location_a.id}', headers=headers)
        assert level.json["quantity"] == 7

        history = client.get(f'/api/inventory/{beans.id}/transactions', headers=headers)
        assert [t["quantity_delta"] for t in history.json["transactions"]] == [7]

    def test_level_hidden_from_other_tenant(self, client, db_session, tenant_a, tenant_b, location_a, beans):
        stock(tenant_a, beans, location_a, 7)
        response = client.get(f'/api/inventory/{beans.id}/{location_a.id}', headers=identity_headers(tenant_b))
        assert response.status_code == 400
        assert "quantity" not in response.json

    def test_adjust_below_zero_is_conflict(self, client, db_session, tenant_a, location_a, beans):
        response = client.post(
            '/api/inventory/adjust',
            json={"item_id": beans.id, "location_id": location_a.id, "delta": -1, "reason": "shrink"},
            headers=identity_headers(tenant_a),
        )
        assert response.status_code == 409
        assert response.json["details"]["available"] == 0

    def test_adjust_requires_integer_delta(self, client, db_session, tenant_a, location_a, beans):
        response = client.post(
            '/api/inventory/adjust',
            json={"item_id": beans.id, "location_id": location_a.id, "delta": "5"},
            headers=identity_headers(tenant_a),
        )
        assert response.status_code == 400

    def test_transfer(self, client, db_session, tenant_a, location_a, warehouse_a, beans):
        stock(tenant_a, beans, warehouse_a, 4)
        response = client.post(
            '/api/inventory/transfer',
            json={
                "item_id": beans.id,
                "from_location_id": warehouse_a.id,
                "to_location_id": location_a.id,
                "quantity": 3,
            },
            headers=identity_headers(tenant_a),
        )
        assert response.status_code == 200
        assert response.json["from"]["quantity"] == 1
        assert response.json["to"]["quantity"] == 3


class TestRewardsRoutes:
    def test_points_after_checkout(self, client, db_session, tenant_a, location_a, beans, filters, customer_a, cashier_a):
        stock(tenant_a, beans, location_a, 5)
        stock(tenant_a, filters, location_a, 5)
        payload = cart_payload(beans, filters, location_a)
        payload["cart"]["customer"] = {"id": customer_a.id, "taxable": True}
        headers = identity_headers(tenant_a, cashier_a)
        assert client.post('/api/sales/checkout', json=payload, headers=headers).status_code == 201

        points = client.get(f'/api/rewards/customers/{customer_a.id}/points', headers=headers)
        assert points.status_code == 200
        assert points.json["points"] == 71

        commissions = client.get(f'/api/rewards/employees/{cashier_a.id}/commissions?paid=false', headers=headers)
        assert commissions.status_code == 200
        assert [c["commission_amount"] for c in commissions.json["commissions"]] == ["3.57"]

    def test_unknown_customer(self, client, db_session, tenant_a):
        response = client.get('/api/rewards/customers/999/points', headers=identity_headers(tenant_a))
        assert response.status_code == 400
