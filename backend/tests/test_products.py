# Overview: Pytest coverage for owner-scoped product management.

import pytest

from stockflow.models import AuditLog, Product


class TestProductRoutes:

    def test_create_and_get(self, client, db_session, headers_a, owner_a):
        response = client.post("/api/products", json={
            "name": "Notebook",
            "sku": "NB-01",
            "inventory": 40,
            "price_cents": 4999,
            "cp_cents": 3000,
        }, headers=headers_a)

        assert response.status_code == 201
        product = response.get_json()["product"]
        assert product["owner_id"] == owner_a.id
        assert product["inventory"] == 40

        response = client.get(f"/api/products/{product['id']}", headers=headers_a)
        assert response.status_code == 200
        assert response.get_json()["product"]["name"] == "Notebook"

        entry = db_session.query(AuditLog).filter_by(action="CREATE_PRODUCT").one()
        assert entry.entity_id == product["id"]
        assert entry.before is None

    @pytest.mark.parametrize("payload,message", [
        ({"inventory": 1}, "Missing required fields: name"),
        ({"name": "X", "inventory": -1}, "inventory must be >= 0"),
        ({"name": "X", "price_cents": -5}, "price_cents must be >= 0"),
        ({"name": "X", "price_cents": 12.5}, "price_cents must be an integer, not a decimal"),
        ({"name": "X", "owner_id": 2}, "Field not allowed: owner_id"),
        ({"name": "   "}, "name cannot be blank"),
    ])
    def test_create_validation(self, client, db_session, headers_a, payload, message):
        response = client.post("/api/products", json=payload, headers=headers_a)
        assert response.status_code == 400
        assert response.get_json()["error"] == message

    def test_list_is_owner_scoped(self, client, db_session, headers_a, owner_a, owner_b, make_product):
        make_product(owner_a, "Mine B")
        make_product(owner_a, "Mine A")
        make_product(owner_b, "Theirs")

        response = client.get("/api/products", headers=headers_a)

        assert response.status_code == 200
        body = response.get_json()
        assert [p["name"] for p in body["items"]] == ["Mine A", "Mine B"]
        assert body["count"] == 2

    def test_list_pagination(self, client, db_session, headers_a, owner_a, make_product):
        for i in range(5):
            make_product(owner_a, f"P{i}")

        body = client.get("/api/products?page=2&per_page=2", headers=headers_a).get_json()

        assert [p["name"] for p in body["items"]] == ["P2", "P3"]
        assert body["pagination"]["total"] == 5
        assert body["pagination"]["total_pages"] == 3
        assert body["pagination"]["has_next"] is True

    def test_update_own_product(self, client, db_session, headers_a, owner_a, make_product):
        product = make_product(owner_a, "Widget", inventory=3)

        response = client.patch(f"/api/products/{product.id}", json={"inventory": 25}, headers=headers_a)

        assert response.status_code == 200
        assert response.get_json()["product"]["inventory"] == 25
        entry = db_session.query(AuditLog).filter_by(action="UPDATE_PRODUCT").one()
        assert entry.before["inventory"] == 3
        assert entry.after["inventory"] == 25

    def test_foreign_product_is_404(self, client, db_session, headers_a, owner_b, make_product):
        theirs = make_product(owner_b, "Theirs", inventory=3)

        assert client.get(f"/api/products/{theirs.id}", headers=headers_a).status_code == 404
        response = client.put(f"/api/products/{theirs.id}", json={"inventory": 0}, headers=headers_a)
        assert response.status_code == 404

        db_session.expire_all()
        assert db_session.get(Product, theirs.id).inventory == 3
