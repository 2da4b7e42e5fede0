# Overview: Pytest coverage for the sales HTTP API (create, list, get, bill redirect).

import pytest

from stockflow.models import Product, SaleRecord
from stockflow.models.sales import BILL_FAILED, BILL_GENERATED
from stockflow.services import billing_service
from stockflow.services.bill_service import BillRenderError
from stockflow.services.storage_service import UploadResult


BILL_URL = "https://res.cloudinary.com/demo/raw/upload/v1700000000/stockflow_bills/bill_1700000000000.pdf"
DOWNLOAD_URL = "https://res.cloudinary.com/demo/raw/upload/fl_attachment/v1700000000/stockflow_bills/bill_1700000000000.pdf"


def _payload(lines, discount=0):
    return {
        "customer": "Asha Rao",
        "customermail": "asha@example.com",
        "products": [{"productId": pid, "quantity": qty} for pid, qty in lines],
        "discount": discount,
    }


@pytest.fixture
def upload_ok(monkeypatch):
    monkeypatch.setattr(
        billing_service,
        "upload_bill",
        lambda pdf_bytes, folder=None: UploadResult(secure_url=BILL_URL, public_id="p", resource_type="raw"),
    )


class TestUnauthenticated:

    @pytest.mark.parametrize("method,path", [
        ("GET", "/api/sales"),
        ("POST", "/api/sales"),
        ("GET", "/api/sales/1"),
        ("GET", "/api/sales/1/bill"),
    ])
    def test_requires_token(self, client, db_session, method, path):
        response = client.open(path, method=method, json={})
        assert response.status_code == 401
        assert response.get_json()["error"] == "Authentication required"

    def test_rejects_unknown_token(self, client, db_session):
        response = client.get("/api/sales", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401
        assert response.get_json()["error"] == "Invalid or expired token"


class TestCreateSaleRoute:

    def test_success_returns_created_records(self, client, db_session, owner_a, headers_a, make_product):
        product = make_product(owner_a, "Widget", inventory=10, price_cents=5000)

        response = client.post("/api/sales", json=_payload([(product.id, 4)], discount=10), headers=headers_a)

        assert response.status_code == 200
        body = response.get_json()
        assert body["message"] == "Sale completed successfully"
        assert len(body["sales"]) == 1
        sale = body["sales"][0]
        assert sale["amount_cents"] == 18000
        assert sale["product"] == {"product_id": product.id, "product_name": "Widget"}
        assert sale["discount_percent"] == 10.0
        # Upload fails in tests (no Cloudinary credentials) but the sale stands
        assert sale["bill_status"] == BILL_FAILED
        assert sale["pdf_url"] is None
        assert sale["download_url"] is None
        assert body["bill_number"] == sale["bill_number"]

        db_session.expire_all()
        assert db_session.get(Product, product.id).inventory == 6

    def test_validation_errors_joined(self, client, db_session, owner_a, headers_a, make_product):
        a = make_product(owner_a, "Product A", inventory=5, price_cents=10000)
        b = make_product(owner_a, "Product B", inventory=1)

        response = client.post("/api/sales", json=_payload([(a.id, 2), (b.id, 3), (424242, 1)]), headers=headers_a)

        assert response.status_code == 400
        assert response.get_json()["error"] == (
            'Insufficient inventory for "Product B". Available: 1, Requested: 3; '
            "Product 424242 not found or unauthorized"
        )
        db_session.expire_all()
        assert db_session.get(Product, a.id).inventory == 5
        assert db_session.query(SaleRecord).count() == 0

    def test_invalid_discount(self, client, db_session, owner_a, headers_a, make_product):
        product = make_product(owner_a)
        response = client.post("/api/sales", json=_payload([(product.id, 1)], discount=101), headers=headers_a)
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid discount percentage"

    def test_foreign_product_is_not_found(self, client, db_session, owner_b, headers_a, make_product):
        theirs = make_product(owner_b, "Theirs", inventory=5)
        response = client.post("/api/sales", json=_payload([(theirs.id, 1)]), headers=headers_a)
        assert response.status_code == 400
        assert response.get_json()["error"] == f"Product {theirs.id} not found or unauthorized"

    @pytest.mark.parametrize("customermail", [
        "asha@example.com\nBcc: spy@example.com",
        "asha@example.com\r\nSubject: hi",
        "asha@example.com, spy@example.com",
        "not-an-address",
    ])
    def test_bad_customermail_rejected_before_commit(
        self, client, db_session, owner_a, headers_a, make_product, customermail
    ):
        product = make_product(owner_a, inventory=5)
        payload = _payload([(product.id, 2)])
        payload["customermail"] = customermail

        response = client.post("/api/sales", json=payload, headers=headers_a)

        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid customermail"
        db_session.expire_all()
        assert db_session.get(Product, product.id).inventory == 5
        assert db_session.query(SaleRecord).count() == 0

    def test_collaborator_crash_after_commit_still_200(
        self, client, db_session, owner_a, headers_a, make_product, monkeypatch
    ):
        def _crash(*args, **kwargs):
            raise RuntimeError("unexpected")

        monkeypatch.setattr(billing_service, "upload_bill", _crash)
        monkeypatch.setattr(billing_service, "send_sale_receipt", _crash)
        product = make_product(owner_a, inventory=5)

        response = client.post("/api/sales", json=_payload([(product.id, 2)]), headers=headers_a)

        assert response.status_code == 200
        sale = response.get_json()["sales"][0]
        assert sale["bill_status"] == BILL_FAILED
        assert sale["pdf_url"] is None
        db_session.expire_all()
        assert db_session.get(Product, product.id).inventory == 3
        assert db_session.query(SaleRecord).count() == 1

    def test_render_failure_is_500(self, client, db_session, owner_a, headers_a, make_product, monkeypatch):
        def _broken_render(bill):
            raise BillRenderError("boom")

        monkeypatch.setattr(billing_service, "render_bill", _broken_render)
        product = make_product(owner_a)

        response = client.post("/api/sales", json=_payload([(product.id, 1)]), headers=headers_a)

        assert response.status_code == 500
        assert response.get_json()["error"] == "Failed to generate bill"

    def test_unexpected_error_is_500(self, client, db_session, owner_a, headers_a, make_product, monkeypatch):
        def _explode(**kwargs):
            raise RuntimeError("database on fire")

        monkeypatch.setattr("stockflow.services.sales_service.create_sale", _explode)
        response = client.post("/api/sales", json=_payload([(1, 1)]), headers=headers_a)

        assert response.status_code == 500
        assert response.get_json() == {"error": "Internal server error"}


class TestReadRoutes:

    def test_list_is_owner_scoped_and_newest_first(
        self, client, db_session, owner_a, owner_b, headers_a, headers_b, make_product, upload_ok
    ):
        a = make_product(owner_a, "A", inventory=10)
        b = make_product(owner_b, "B", inventory=10)
        client.post("/api/sales", json=_payload([(a.id, 1)]), headers=headers_a)
        client.post("/api/sales", json=_payload([(a.id, 2)]), headers=headers_a)
        client.post("/api/sales", json=_payload([(b.id, 1)]), headers=headers_b)

        response = client.get("/api/sales", headers=headers_a)

        assert response.status_code == 200
        sales = response.get_json()["sales"]
        assert [s["quantity"] for s in sales] == [2, 1]
        assert all(s["owner_id"] == owner_a.id for s in sales)
        assert all(s["bill_status"] == BILL_GENERATED for s in sales)
        assert all(s["download_url"] == DOWNLOAD_URL for s in sales)

    def test_get_own_sale(self, client, db_session, owner_a, headers_a, make_product):
        product = make_product(owner_a)
        created = client.post("/api/sales", json=_payload([(product.id, 1)]), headers=headers_a).get_json()
        sale_id = created["sales"][0]["id"]

        response = client.get(f"/api/sales/{sale_id}", headers=headers_a)

        assert response.status_code == 200
        assert response.get_json()["sale"]["id"] == sale_id

    def test_get_foreign_sale_is_404(self, client, db_session, owner_a, headers_a, headers_b, make_product):
        product = make_product(owner_a)
        created = client.post("/api/sales", json=_payload([(product.id, 1)]), headers=headers_a).get_json()
        sale_id = created["sales"][0]["id"]

        response = client.get(f"/api/sales/{sale_id}", headers=headers_b)

        assert response.status_code == 404
        assert response.get_json()["error"] == "Sale not found or unauthorized"

    def test_bill_redirects_to_stored_url(self, client, db_session, owner_a, headers_a, make_product, upload_ok):
        product = make_product(owner_a)
        created = client.post("/api/sales", json=_payload([(product.id, 1)]), headers=headers_a).get_json()
        sale_id = created["sales"][0]["id"]

        response = client.get(f"/api/sales/{sale_id}/bill", headers=headers_a)

        assert response.status_code == 302
        assert response.headers["Location"] == BILL_URL

    def test_bill_of_foreign_sale_is_404(self, client, db_session, owner_a, headers_a, headers_b, make_product, upload_ok):
        product = make_product(owner_a)
        created = client.post("/api/sales", json=_payload([(product.id, 1)]), headers=headers_a).get_json()
        sale_id = created["sales"][0]["id"]

        response = client.get(f"/api/sales/{sale_id}/bill", headers=headers_b)

        assert response.status_code == 404
        assert response.get_json()["error"] == "Sale not found or unauthorized"

    def test_missing_bill_is_404(self, client, db_session, owner_a, headers_a, make_product):
        product = make_product(owner_a)
        created = client.post("/api/sales", json=_payload([(product.id, 1)]), headers=headers_a).get_json()
        sale_id = created["sales"][0]["id"]

        response = client.get(f"/api/sales/{sale_id}/bill", headers=headers_a)

        assert response.status_code == 404
        assert response.get_json()["error"] == "Bill not found"

    def test_unknown_sale_is_404(self, client, db_session, headers_a):
        response = client.get("/api/sales/999999/bill", headers=headers_a)
        assert response.status_code == 404
        assert response.get_json()["error"] == "Sale not found or unauthorized"

    @pytest.mark.parametrize("path,target", [
        ("/api/sales/1", "get_sale"),
        ("/api/sales/1/bill", "get_bill_url"),
    ])
    def test_store_error_is_json_500(self, client, db_session, headers_a, monkeypatch, path, target):
        def _explode(*args, **kwargs):
            raise RuntimeError("database on fire")

        monkeypatch.setattr(f"stockflow.services.sales_service.{target}", _explode)

        response = client.get(path, headers=headers_a)

        assert response.status_code == 500
        assert response.get_json() == {"error": "Internal server error"}
