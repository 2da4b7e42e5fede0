# Overview: Pytest coverage for stock alerts and the notification/audit endpoints.

import pytest

from stockflow.models import Notification
from stockflow.models.communications import KIND_FORECAST_WARNING, KIND_LOW_STOCK
from stockflow.services import notification_service


class TestStockChecks:

    def test_low_stock_uses_product_threshold_over_default(self, db_session, owner_a, make_product):
        product = make_product(owner_a, "Widget", inventory=4, low_stock_threshold=3)
        assert notification_service.check_low_stock(product, owner_a.id) is None

        product.inventory = 3
        alert = notification_service.check_low_stock(product, owner_a.id)
        assert alert.kind == KIND_LOW_STOCK
        assert "Widget" in alert.title

    def test_out_of_stock_title(self, db_session, owner_a, make_product):
        product = make_product(owner_a, "Widget", inventory=0)
        alert = notification_service.check_low_stock(product, owner_a.id)
        assert alert.title == "Widget is out of stock"

    def test_duplicate_unread_alert_suppressed_until_read(self, db_session, owner_a, make_product):
        product = make_product(owner_a, "Widget", inventory=2)
        first = notification_service.check_low_stock(product, owner_a.id)
        assert notification_service.check_low_stock(product, owner_a.id) is None

        notification_service.mark_read(first.id, owner_a.id)
        assert notification_service.check_low_stock(product, owner_a.id) is not None

    @pytest.mark.parametrize("inventory,avg,fires", [
        (30, 0.0, False),
        (30, 2.0, False),   # 15 days left
        (13, 2.0, True),    # 6.5 days left
    ])
    def test_forecast(self, db_session, owner_a, make_product, inventory, avg, fires):
        product = make_product(owner_a, "Widget", inventory=inventory, daily_sales_avg=avg)
        alert = notification_service.check_forecast(product, owner_a.id)
        assert (alert is not None) is fires
        if fires:
            assert alert.kind == KIND_FORECAST_WARNING
            assert "6.5 day(s)" in alert.message


class TestNotificationRoutes:

    def _seed(self, db_session, owner, product_name="Widget"):
        alert = Notification(owner_id=owner.id, kind=KIND_LOW_STOCK, title=f"{product_name} is running low", message="low")
        db_session.add(alert)
        db_session.commit()
        return alert

    def test_list_and_mark_read(self, client, db_session, owner_a, headers_a):
        alert = self._seed(db_session, owner_a)

        body = client.get("/api/notifications", headers=headers_a).get_json()
        assert body["unread_count"] == 1
        assert body["notifications"][0]["id"] == alert.id

        response = client.post(f"/api/notifications/{alert.id}/read", headers=headers_a)
        assert response.status_code == 200
        assert response.get_json()["notification"]["is_read"] is True

        body = client.get("/api/notifications?unread=true", headers=headers_a).get_json()
        assert body["notifications"] == []

    def test_foreign_notification_is_404(self, client, db_session, owner_b, headers_a):
        alert = self._seed(db_session, owner_b)
        response = client.post(f"/api/notifications/{alert.id}/read", headers=headers_a)
        assert response.status_code == 404

    def test_sale_raises_alert_visible_to_owner_only(self, client, db_session, owner_a, headers_a, headers_b, make_product):
        product = make_product(owner_a, "Widget", inventory=11)
        client.post("/api/sales", json={
            "customer": "Asha Rao",
            "customermail": "asha@example.com",
            "products": [{"productId": product.id, "quantity": 2}],
        }, headers=headers_a)

        mine = client.get("/api/notifications", headers=headers_a).get_json()["notifications"]
        theirs = client.get("/api/notifications", headers=headers_b).get_json()["notifications"]
        assert [n["kind"] for n in mine] == [KIND_LOW_STOCK]
        assert mine[0]["product_id"] == product.id
        assert theirs == []


class TestAuditRoute:

    def test_owner_sees_only_own_entries(self, client, db_session, owner_a, headers_a, headers_b, make_product):
        product = make_product(owner_a, "Widget", inventory=10)
        client.post("/api/sales", json={
            "customer": "Asha Rao",
            "customermail": "asha@example.com",
            "products": [{"productId": product.id, "quantity": 1}],
        }, headers=headers_a)

        mine = client.get("/api/audit?action=CREATE_SALE", headers=headers_a).get_json()
        theirs = client.get("/api/audit", headers=headers_b).get_json()

        assert mine["count"] == 1
        assert mine["events"][0]["entity_type"] == "sale"
        assert mine["events"][0]["after"]["customer"] == "Asha Rao"
        assert theirs["count"] == 0
